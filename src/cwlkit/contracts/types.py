"""Type and binding models for CWL parameters.

A parameter's declared type is always an ordered list of alternatives
(a union).  Each alternative is one variant of the ``kind``-discriminated
``CwlType`` sum.  Suffixed literals such as ``File[]`` or ``int?`` are kept
verbatim on ``ScalarType`` and interpreted by :func:`expand_literal` when a
value is bound against them.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


PRIMITIVE_TYPES = frozenset({
    "null", "boolean", "int", "long", "float", "double", "string",
    "File", "Directory", "Any", "stdout", "stderr",
})


class TemplateModel(BaseModel):
    """Base for decoded document models (immutable once built)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Binding(TemplateModel):
    """How a value maps onto the command line, or how an output is collected."""

    position: int = 0
    prefix: str | None = None
    separate: bool = True
    item_separator: str | None = None
    shell_quote: bool = True
    value_from: str | None = None
    load_contents: bool = False
    glob: list[str] = Field(default_factory=list)
    output_eval: str | None = None


class ScalarType(TemplateModel):
    """A named type: primitive, suffixed literal (``File[]``, ``int?``) or schema name."""

    kind: Literal["scalar"] = "scalar"
    name: str
    binding: Binding | None = None


class ArrayType(TemplateModel):
    kind: Literal["array"] = "array"
    items: list[CwlType]
    name: str | None = None
    binding: Binding | None = None


class RecordField(TemplateModel):
    name: str
    types: list[CwlType]
    binding: Binding | None = None
    label: str | None = None
    doc: str | None = None


class RecordType(TemplateModel):
    kind: Literal["record"] = "record"
    name: str | None = None
    fields: list[RecordField] = Field(default_factory=list)
    binding: Binding | None = None


class EnumType(TemplateModel):
    kind: Literal["enum"] = "enum"
    name: str | None = None
    symbols: list[str] = Field(default_factory=list)
    binding: Binding | None = None


class ReferenceType(TemplateModel):
    """Forward reference to a type declared by a SchemaDefRequirement."""

    kind: Literal["reference"] = "reference"
    name: str
    binding: Binding | None = None


CwlType = Annotated[
    Union[ScalarType, ArrayType, RecordType, EnumType, ReferenceType],
    Field(discriminator="kind"),
]

ArrayType.model_rebuild()
RecordField.model_rebuild()
RecordType.model_rebuild()


def parse_type_name(name: str, binding: Binding | None = None) -> ScalarType | ReferenceType:
    """Build the type for a string literal, keeping suffixed forms verbatim."""
    if name.endswith("[]") or name.endswith("?"):
        return ScalarType(name=name, binding=binding)
    if "#" in name:
        return ReferenceType(name=name, binding=binding)
    return ScalarType(name=name, binding=binding)


def type_name(name: str | None) -> str:
    """Normalize ``types.yml#Foo`` / ``#Foo`` / ``Foo`` to ``Foo``."""
    if not name:
        return ""
    return name.rsplit("#", 1)[-1].rsplit("/", 1)[-1]


def is_optional(types: list[CwlType]) -> bool:
    """True when the union admits null (``null`` alternative or ``T?`` literal)."""
    for t in types:
        if isinstance(t, ScalarType) and (t.name == "null" or t.name.endswith("?")):
            return True
    return False


def non_null(types: list[CwlType]) -> list[CwlType]:
    return [t for t in types if not (isinstance(t, ScalarType) and t.name == "null")]


def expand_literal(t: CwlType) -> CwlType:
    """Interpret ``T[]`` and ``T?`` suffixes as structured types.

    ``T?`` expands to ``T`` (optionality is a property of the union, see
    :func:`is_optional`); ``T[]`` expands to an ``ArrayType`` of ``T``.
    Any other type is returned unchanged.
    """
    if not isinstance(t, ScalarType):
        return t
    if t.name.endswith("?"):
        return expand_literal(parse_type_name(t.name[:-1], t.binding))
    if t.name.endswith("[]"):
        item = expand_literal(parse_type_name(t.name[:-2]))
        return ArrayType(items=[item], binding=t.binding)
    return t


def display_name(t: CwlType) -> str:
    if isinstance(t, (ScalarType, ReferenceType)):
        return t.name
    if isinstance(t, ArrayType):
        return "|".join(display_name(i) for i in t.items) + "[]"
    return t.name or t.kind
