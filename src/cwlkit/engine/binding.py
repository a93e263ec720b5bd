"""Flatten bound values into command-line tokens and order them by binding."""

from __future__ import annotations

import json
from typing import Any, NamedTuple

from cwlkit.contracts.common import PendingValueError
from cwlkit.contracts.params import Argument, InputParameter
from cwlkit.contracts.types import (
    PRIMITIVE_TYPES,
    ArrayType,
    Binding,
    CwlType,
    EnumType,
    RecordType,
    ReferenceType,
    ScalarType,
    expand_literal,
    non_null,
    type_name,
)
from cwlkit.engine.context import BindingContext, OutputRef
from cwlkit.engine.expressions import ExpressionEvaluator, evaluate
from cwlkit.engine.files import is_file_object


class Token(NamedTuple):
    text: str
    quote: bool = True


class Bindable(NamedTuple):
    """One argument, input or record field with its rendered tokens."""

    binding: Binding | None
    index: int
    tokens: list[Token]


def sort_key(binding: Binding | None, index: int) -> tuple[int, int, int]:
    """Unbound items sit at position 0, ahead of bound position-0 items."""
    if binding is None:
        return (0, 0, index)
    return (binding.position, 1, index)


def order(items: list[Bindable]) -> list[Bindable]:
    return sorted(items, key=lambda item: sort_key(item.binding, item.index))


def token_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, OutputRef):
        return value.placeholder()
    if is_file_object(value):
        return str(value.get("path") or value.get("location"))
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _matches(t: CwlType, value: Any) -> bool:
    if isinstance(t, ArrayType):
        return isinstance(value, list)
    if isinstance(t, RecordType):
        return isinstance(value, dict) and not is_file_object(value)
    if isinstance(t, EnumType):
        return isinstance(value, str) and (value in t.symbols or any(s.endswith("/" + value) for s in t.symbols))
    if not isinstance(t, ScalarType):
        return False
    name = t.name
    if name in ("File", "Directory"):
        return is_file_object(value) and value.get("class") == name
    if name in ("int", "long"):
        return isinstance(value, int) and not isinstance(value, bool)
    if name in ("float", "double"):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if name == "boolean":
        return isinstance(value, bool)
    if name == "string":
        return isinstance(value, str)
    if name == "null":
        return value is None
    return name == "Any"


class Flattener:
    """Renders one Root's arguments and inputs against a binding context.

    ``schema`` maps bare type names to the types declared by the effective
    SchemaDefRequirement.  After flattening, ``deferred`` is true when a
    token still refers to a value another step produces, and ``pending``
    names those steps.
    """

    def __init__(
        self,
        evaluator: ExpressionEvaluator,
        context: BindingContext,
        schema: dict[str, CwlType] | None = None,
    ) -> None:
        self.evaluator = evaluator
        self.context = context
        self.schema = schema or {}
        self.deferred = False
        self.pending: set[str] = set()

    # -- types -------------------------------------------------------------
    def resolve_type(self, t: CwlType) -> CwlType:
        t = expand_literal(t)
        if isinstance(t, ReferenceType) or (isinstance(t, ScalarType) and t.name not in PRIMITIVE_TYPES):
            declared = self.schema.get(type_name(t.name))
            if declared is not None:
                return declared
        return t

    def select_type(self, value: Any, types: list[CwlType] | None) -> CwlType | None:
        if not types:
            return None
        candidates = [self.resolve_type(t) for t in non_null(types)]
        for t in candidates:
            if _matches(t, value):
                return t
        return candidates[0] if candidates else None

    # -- values ------------------------------------------------------------
    def evaluate(self, expression: Any, self_value: Any = None) -> Any:
        return evaluate(self.evaluator, expression, self.context.expression_context(self_value))

    def _pending(self, ref: OutputRef) -> None:
        self.deferred = True
        self.pending.add(ref.step)

    def flatten(self, value: Any, types: list[CwlType] | None, binding: Binding | None) -> list[Token]:
        if binding is not None and binding.value_from is not None:
            if isinstance(value, OutputRef):
                self._pending(value)
                return self._prefixed([Token(binding.value_from, binding.shell_quote)], binding)
            try:
                value = self.evaluate(binding.value_from, value)
            except PendingValueError:
                self.deferred = True
                return self._prefixed([Token(binding.value_from, binding.shell_quote)], binding)
            types = None
        return self._emit(value, types, binding)

    def _emit(self, value: Any, types: list[CwlType] | None, binding: Binding | None) -> list[Token]:
        quote = binding.shell_quote if binding is not None else True
        if isinstance(value, OutputRef):
            self._pending(value)
            return self._prefixed([Token(value.placeholder(), quote)], binding)
        if value is None:
            return []
        if isinstance(value, bool):
            if value and binding is not None and binding.prefix:
                return [Token(binding.prefix, quote)]
            return []

        typ = self.select_type(value, types)
        if isinstance(value, list):
            if not value:
                return []
            if binding is not None and binding.item_separator is not None:
                for item in value:
                    if isinstance(item, OutputRef):
                        self._pending(item)
                text = binding.item_separator.join(token_text(v) for v in value)
                return self._prefixed([Token(text, quote)], binding)
            item_types = typ.items if isinstance(typ, ArrayType) else None
            item_binding = typ.binding if isinstance(typ, ArrayType) and typ.binding else Binding()
            tokens: list[Token] = []
            for item in value:
                tokens.extend(self.flatten(item, item_types, item_binding))
            return self._prefixed(tokens, binding)

        if isinstance(value, dict) and not is_file_object(value):
            if isinstance(typ, RecordType):
                return self._prefixed(self._record(value, typ), binding)
            return self._prefixed([Token(token_text(value), quote)], binding)

        return self._prefixed([Token(token_text(value), quote)], binding)

    def _record(self, value: dict[str, Any], typ: RecordType) -> list[Token]:
        items = []
        for index, field in enumerate(typ.fields):
            if field.name not in value:
                continue
            field_value = value[field.name]
            if field.binding is None:
                tokens = [] if field_value is None else [Token(token_text(field_value))]
            else:
                tokens = self.flatten(field_value, field.types, field.binding)
            items.append(Bindable(field.binding, index, tokens))
        return [tok for item in order(items) for tok in item.tokens]

    @staticmethod
    def _prefixed(tokens: list[Token], binding: Binding | None) -> list[Token]:
        if binding is None or not binding.prefix or not tokens:
            return tokens
        if binding.separate:
            return [Token(binding.prefix, binding.shell_quote), *tokens]
        first = tokens[0]
        return [Token(binding.prefix + first.text, first.quote), *tokens[1:]]

    # -- arguments and inputs ---------------------------------------------
    def argument(self, argument: Argument) -> list[Token]:
        if argument.binding is None:
            value = self.evaluate(argument.value or "")
            if isinstance(value, list):
                return [Token(token_text(v)) for v in value]
            return [] if value is None else [Token(token_text(value))]
        return self.flatten(None, None, argument.binding)

    def input(self, param: InputParameter) -> list[Token]:
        if param.binding is None:
            return []
        return self.flatten(self.context.get(param.id), param.types, param.binding)

    def arguments(self, arguments: list[Argument]) -> list[Token]:
        items = [Bindable(arg.binding, i, self.argument(arg)) for i, arg in enumerate(arguments)]
        return [tok for item in order(items) for tok in item.tokens]

    def inputs(self, params: list[InputParameter]) -> tuple[list[Token], list[Token]]:
        """Return (prior tokens from negative positions, remaining tokens)."""
        items = [Bindable(p.binding, i, self.input(p)) for i, p in enumerate(params)]
        priors: list[Token] = []
        rest: list[Token] = []
        for item in order(items):
            if item.binding is not None and item.binding.position < 0:
                priors.extend(item.tokens)
            else:
                rest.extend(item.tokens)
        return priors, rest
