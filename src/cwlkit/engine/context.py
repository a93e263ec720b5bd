"""Per-invocation binding context, kept apart from the immutable document template."""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict


class OutputRef(BaseModel):
    """Placeholder for a value a sibling step produces when it runs."""

    model_config = ConfigDict(frozen=True)

    step: str
    output: str

    @property
    def source(self) -> str:
        return f"{self.step}/{self.output}"

    def placeholder(self) -> str:
        return f"$({self.source})"


def contains_output_ref(value: Any) -> bool:
    if isinstance(value, OutputRef):
        return True
    if isinstance(value, list):
        return any(contains_output_ref(v) for v in value)
    if isinstance(value, dict):
        return any(contains_output_ref(v) for v in value.values())
    return False


class BindingContext:
    """Bound input values and runtime for one Root resolution.

    Provided values are deep-copied on entry, so scatter instances and
    sibling steps never observe each other's bindings.
    """

    def __init__(self, runtime: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = {}
        self.runtime: dict[str, Any] = dict(runtime or {})

    def bind(self, input_id: str, value: Any) -> None:
        self.values[input_id] = copy.deepcopy(value)

    def get(self, input_id: str, default: Any = None) -> Any:
        return self.values.get(input_id, default)

    def __contains__(self, input_id: str) -> bool:
        return input_id in self.values

    def expression_context(self, self_value: Any = None) -> dict[str, Any]:
        return {"inputs": self.values, "self": self_value, "runtime": self.runtime}
