"""Parameter models: inputs, outputs, arguments, defaults, secondary files."""

from __future__ import annotations

import copy
from typing import Any, Literal

from pydantic import Field

from cwlkit.contracts.types import Binding, CwlType, TemplateModel


class DefaultValue(TemplateModel):
    """A declared default, tagged with the shape it was written in."""

    shape: Literal["map", "list", "scalar"]
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "DefaultValue":
        if isinstance(value, dict):
            shape = "map"
        elif isinstance(value, list):
            shape = "list"
        else:
            shape = "scalar"
        return cls(shape=shape, value=value)

    def materialize(self) -> Any:
        """Return a private copy of the value, safe to bind into a context."""
        return copy.deepcopy(self.value)


class SecondaryFile(TemplateModel):
    """A suffix rule (``.bai``, ``^.bai``) or an expression yielding files."""

    pattern: str
    required: bool | None = None


class Argument(TemplateModel):
    """One entry of ``arguments``: a literal string or a binding."""

    value: str | None = None
    binding: Binding | None = None


class InputParameter(TemplateModel):
    id: str
    types: list[CwlType]
    binding: Binding | None = None
    default: DefaultValue | None = None
    secondary_files: list[SecondaryFile] = Field(default_factory=list)
    format: str | list[str] | None = None
    label: str | None = None
    doc: str | None = None
    streamable: bool = False


class OutputParameter(TemplateModel):
    id: str
    types: list[CwlType]
    binding: Binding | None = None
    output_source: list[str] = Field(default_factory=list)
    link_merge: str | None = None
    secondary_files: list[SecondaryFile] = Field(default_factory=list)
    format: str | list[str] | None = None
    label: str | None = None
    doc: str | None = None
