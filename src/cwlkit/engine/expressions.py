"""Expression capability: evaluator protocol and the shipped evaluators.

The evaluator is an injected collaborator.  :class:`ParameterReferenceEvaluator`
understands CWL parameter references (``$(inputs.reads.path)``,
``$(runtime.outdir)``, ``$(self[0].basename)``) and string interpolation.
:class:`JavascriptEvaluator` handles everything else through cwl_utils when
the document declares InlineJavascriptRequirement; plain references still
take the parameter-reference path.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable, Protocol

from cwl_utils import expression as cwl_expression
from pydantic import BaseModel, Field

from cwlkit.contracts.common import (
    CwlError,
    ExpressionEvaluationError,
    PendingValueError,
    UnsupportedConstructError,
)
from cwlkit.contracts.requirements import InlineJavascriptRequirement, Requirement
from cwlkit.engine.context import OutputRef, contains_output_ref
from cwlkit.io.fileops import read_text_safe

_SEGMENT = r"""(?:\.[A-Za-z_][\w-]*|\['(?:[^'\\]|\\.)*'\]|\["(?:[^"\\]|\\.)*"\]|\[\d+\])"""
_PARAM_REF = re.compile(rf"\$\(\s*((?:inputs|self|runtime){_SEGMENT}*)\s*\)")
_SEGMENT_RE = re.compile(r"""\.([A-Za-z_][\w-]*)|\['((?:[^'\\]|\\.)*)'\]|\["((?:[^"\\]|\\.)*)"\]|\[(\d+)\]""")
_ROOT_RE = re.compile(r"(inputs|self|runtime)")


class ExpressionCapabilities(BaseModel):
    """What an evaluator may use, derived from InlineJavascriptRequirement."""

    javascript: bool = False
    libraries: list[str] = Field(default_factory=list)
    includes: list[str] = Field(default_factory=list)
    extensions: list[str] = Field(default_factory=list)
    base_dir: str | None = None

    @classmethod
    def from_requirements(
        cls, requirements: list[Requirement], base_dir: str | None = None
    ) -> "ExpressionCapabilities":
        caps = cls(base_dir=base_dir)
        for req in requirements:
            if not isinstance(req, InlineJavascriptRequirement):
                continue
            caps.javascript = True
            for entry in req.expression_lib:
                if entry.kind == "$include":
                    caps.includes.append(entry.value)
                    name = Path(entry.value).name.split(".", 1)[0]
                    if name and name not in caps.extensions:
                        caps.extensions.append(name)
                else:
                    caps.libraries.append(entry.value)
        return caps


class ExpressionEvaluator(Protocol):
    """Evaluates one expression string against ``inputs``/``self``/``runtime``."""

    def evaluate(self, expression: str, context: dict[str, Any]) -> Any: ...


EvaluatorFactory = Callable[[ExpressionCapabilities], ExpressionEvaluator]


def is_expression(text: Any) -> bool:
    return isinstance(text, str) and ("$(" in text or "${" in text)


def _lookup(expression: str, ref: str, context: dict[str, Any]) -> Any:
    root = _ROOT_RE.match(ref)
    if root is None:
        raise UnsupportedConstructError(f"Unsupported parameter reference: {ref}")
    value = context.get(root.group(1))
    rest = ref[root.end():]
    walked = root.group(1)
    for match in _SEGMENT_RE.finditer(rest):
        if isinstance(value, OutputRef):
            raise PendingValueError(expression, f"'{walked}' is produced by step '{value.step}'")
        name, single, double, index = match.groups()
        key = name if name is not None else single if single is not None else double
        walked += match.group(0)
        if index is not None:
            if not isinstance(value, list):
                raise ExpressionEvaluationError(expression, f"'{walked}': cannot index a non-list")
            position = int(index)
            if position >= len(value):
                raise ExpressionEvaluationError(expression, f"'{walked}': index out of range")
            value = value[position]
        elif isinstance(value, dict):
            if key not in value:
                raise ExpressionEvaluationError(expression, f"'{walked}' is not defined")
            value = value[key]
        elif isinstance(value, list) and key == "length":
            value = len(value)
        elif value is None:
            raise ExpressionEvaluationError(expression, f"'{walked}': parent value is null")
        else:
            raise ExpressionEvaluationError(expression, f"'{walked}': cannot look up a field on {type(value).__name__}")
    if isinstance(value, OutputRef):
        raise PendingValueError(expression, f"'{walked}' is produced by step '{value.step}'")
    return value


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None or isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


class ParameterReferenceEvaluator:
    """Evaluator for CWL parameter references, without JavaScript."""

    def __init__(self, capabilities: ExpressionCapabilities | None = None) -> None:
        self.capabilities = capabilities or ExpressionCapabilities()

    def evaluate(self, expression: str, context: dict[str, Any]) -> Any:
        if not isinstance(expression, str):
            return expression
        whole = _PARAM_REF.fullmatch(expression)
        if whole is not None:
            return _lookup(expression, whole.group(1), context)

        out: list[str] = []
        i = 0
        while i < len(expression):
            ch = expression[i]
            if ch == "\\" and expression.startswith(("$(", "${"), i + 1):
                out.append(expression[i + 1:i + 3])
                i += 3
                continue
            if expression.startswith("$(", i):
                match = _PARAM_REF.match(expression, i)
                if match is None:
                    raise UnsupportedConstructError(
                        f"JavaScript expression needs a JavaScript evaluator: {expression}",
                        details={"expression": expression},
                    )
                out.append(_to_text(_lookup(expression, match.group(1), context)))
                i = match.end()
                continue
            if expression.startswith("${", i) and self.capabilities.javascript:
                raise UnsupportedConstructError(
                    f"JavaScript function body needs a JavaScript evaluator: {expression}",
                    details={"expression": expression},
                )
            out.append(ch)
            i += 1
        return "".join(out)


def _only_references(expression: str) -> bool:
    """True when every unescaped ``$(...)`` is a plain parameter reference."""
    if "${" in expression:
        return False
    i = expression.find("$(")
    while i != -1:
        escaped = i > 0 and expression[i - 1] == "\\"
        if not escaped and _PARAM_REF.match(expression, i) is None:
            return False
        i = expression.find("$(", i + 2)
    return True


class JavascriptEvaluator:
    """Evaluator for documents that declare InlineJavascriptRequirement.

    Plain parameter references are looked up directly.  Anything else runs
    in the cwl_utils JavaScript sandbox (node, or a node container) with the
    ``$include`` files and ``expressionLib`` code loaded first.  An
    expression over an input another step has not produced yet raises
    :class:`PendingValueError`.
    """

    def __init__(self, capabilities: ExpressionCapabilities) -> None:
        self.capabilities = capabilities
        self.references = ParameterReferenceEvaluator(capabilities)
        self._library: list[str] | None = None

    def library(self) -> list[str]:
        if self._library is None:
            code = []
            for include in self.capabilities.includes:
                path = Path(include)
                if not path.is_absolute() and self.capabilities.base_dir:
                    path = Path(self.capabilities.base_dir) / path
                code.append(read_text_safe(path))
            code.extend(self.capabilities.libraries)
            self._library = code
        return self._library

    def evaluate(self, expression: str, context: dict[str, Any]) -> Any:
        if not isinstance(expression, str):
            return expression
        if _only_references(expression):
            return self.references.evaluate(expression, context)
        if contains_output_ref(context.get("inputs")) or contains_output_ref(context.get("self")):
            raise PendingValueError(expression, "an input is produced by a step that has not run")
        rootvars = {name: context.get(name) for name in ("inputs", "self", "runtime")}
        return cwl_expression.interpolate(
            expression,
            rootvars,
            jslib=cwl_expression.jshead(self.library(), rootvars),
            fullJS=True,
            strip_whitespace=False,
        )


def default_evaluator_factory(capabilities: ExpressionCapabilities) -> ExpressionEvaluator:
    if capabilities.javascript:
        return JavascriptEvaluator(capabilities)
    return ParameterReferenceEvaluator(capabilities)


def evaluate(evaluator: ExpressionEvaluator, expression: Any, context: dict[str, Any]) -> Any:
    """Evaluate ``expression`` if it is one; wrap evaluator failures."""
    if not is_expression(expression):
        return expression
    try:
        return evaluator.evaluate(expression, context)
    except CwlError:
        raise
    except Exception as e:
        raise ExpressionEvaluationError(expression, str(e)) from e
