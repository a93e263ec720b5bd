"""Document models: workflow steps and the document Root."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import Field, model_validator

from cwlkit.contracts.params import Argument, DefaultValue, InputParameter, OutputParameter
from cwlkit.contracts.requirements import Requirement
from cwlkit.contracts.types import TemplateModel


class ScatterMethod(str, Enum):
    DOTPRODUCT = "dotproduct"
    NESTED_CROSSPRODUCT = "nested_crossproduct"
    FLAT_CROSSPRODUCT = "flat_crossproduct"


class LinkMerge(str, Enum):
    MERGE_NESTED = "merge_nested"
    MERGE_FLATTENED = "merge_flattened"


class StepInput(TemplateModel):
    id: str
    source: list[str] = Field(default_factory=list)
    link_merge: LinkMerge | None = None
    default: DefaultValue | None = None
    value_from: str | None = None


class StepOutput(TemplateModel):
    id: str


class RunTarget(TemplateModel):
    """Exactly one of an opaque external reference or an inlined document."""

    reference: str | None = None
    document: Root | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "RunTarget":
        if (self.reference is None) == (self.document is None):
            raise ValueError("run target needs exactly one of 'reference' or 'document'")
        return self


class Step(TemplateModel):
    id: str
    inputs: list[StepInput] = Field(default_factory=list)
    outputs: list[StepOutput] = Field(default_factory=list)
    run: RunTarget
    scatter: list[str] = Field(default_factory=list)
    scatter_method: ScatterMethod | None = None
    requirements: list[Requirement] = Field(default_factory=list)
    hints: list[Requirement] = Field(default_factory=list)
    label: str | None = None
    doc: str | None = None

    def find_input(self, input_id: str) -> StepInput | None:
        for step_input in self.inputs:
            if step_input.id == input_id:
                return step_input
        return None


RootClass = Literal["CommandLineTool", "Workflow", "ExpressionTool"]


class Root(TemplateModel):
    """One decoded document (or one ``$graph`` entry)."""

    id: str | None = None
    class_: RootClass | None = Field(None, alias="class")
    cwl_version: str | None = None
    label: str | None = None
    doc: str | None = None
    namespaces: dict[str, str] = Field(default_factory=dict)
    schemas: list[str] = Field(default_factory=list)
    base_command: list[str] = Field(default_factory=list)
    arguments: list[Argument] = Field(default_factory=list)
    stdin: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    inputs: list[InputParameter] = Field(default_factory=list)
    outputs: list[OutputParameter] = Field(default_factory=list)
    requirements: list[Requirement] = Field(default_factory=list)
    hints: list[Requirement] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    expression: str | None = None
    success_codes: list[int] = Field(default_factory=list)
    temporary_fail_codes: list[int] = Field(default_factory=list)
    permanent_fail_codes: list[int] = Field(default_factory=list)
    graph: list[Root] = Field(default_factory=list)

    @property
    def is_workflow(self) -> bool:
        return self.class_ == "Workflow" or (bool(self.steps) and not self.base_command)

    @property
    def is_expression_tool(self) -> bool:
        return self.class_ == "ExpressionTool"

    def find_input(self, input_id: str) -> InputParameter | None:
        for param in self.inputs:
            if param.id == input_id:
                return param
        return None

    def find_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def find_graph(self, entry_id: str) -> Root | None:
        """Look up a ``$graph`` entry by id (leading ``#`` optional)."""
        wanted = entry_id.lstrip("#")
        for entry in self.graph:
            if entry.id == wanted:
                return entry
        return None

    def entry(self, entry_id: str | None = None) -> Root:
        """Select the Root to resolve: ``entry_id``, ``main``, or the sole graph entry."""
        if not self.graph:
            return self
        if entry_id:
            found = self.find_graph(entry_id)
            if found is None:
                raise KeyError(entry_id)
            return found
        found = self.find_graph("main")
        if found is not None:
            return found
        if len(self.graph) == 1:
            return self.graph[0]
        raise KeyError("main")

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "class": self.class_,
            "cwlVersion": self.cwl_version,
            "inputs": [p.id for p in self.inputs],
            "outputs": [p.id for p in self.outputs],
            "steps": [s.id for s in self.steps],
            "graph": [g.id for g in self.graph],
        }


RunTarget.model_rebuild()
Step.model_rebuild()
Root.model_rebuild()
