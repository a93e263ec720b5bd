"""Requirement and hint models, one model per requirement class."""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import Field

from cwlkit.contracts.types import CwlType, TemplateModel


class ExpressionLibEntry(TemplateModel):
    """A code fragment to execute, or a library to ``$include``."""

    kind: Literal["$execute", "$include"] = "$execute"
    value: str


class InlineJavascriptRequirement(TemplateModel):
    class_: Literal["InlineJavascriptRequirement"] = Field("InlineJavascriptRequirement", alias="class")
    expression_lib: list[ExpressionLibEntry] = Field(default_factory=list)


class SchemaDefRequirement(TemplateModel):
    class_: Literal["SchemaDefRequirement"] = Field("SchemaDefRequirement", alias="class")
    types: list[CwlType] = Field(default_factory=list)


class DockerRequirement(TemplateModel):
    class_: Literal["DockerRequirement"] = Field("DockerRequirement", alias="class")
    docker_pull: str | None = None
    docker_load: str | None = None
    docker_file: str | None = None
    docker_import: str | None = None
    docker_image_id: str | None = None
    docker_output_directory: str | None = None


class SoftwarePackage(TemplateModel):
    package: str
    version: list[str] = Field(default_factory=list)
    specs: list[str] = Field(default_factory=list)


class SoftwareRequirement(TemplateModel):
    class_: Literal["SoftwareRequirement"] = Field("SoftwareRequirement", alias="class")
    packages: list[SoftwarePackage] = Field(default_factory=list)


class WorkDirEntry(TemplateModel):
    """One listing item: a Dirent (``entry``/``entryname``) or a file/expression (``location``)."""

    entry: str | None = None
    entryname: str | None = None
    writable: bool = False
    location: str | None = None

    @property
    def key(self) -> str:
        return self.entryname or self.location or self.entry or ""


class InitialWorkDirRequirement(TemplateModel):
    class_: Literal["InitialWorkDirRequirement"] = Field("InitialWorkDirRequirement", alias="class")
    listing: list[WorkDirEntry] = Field(default_factory=list)


class EnvDef(TemplateModel):
    name: str
    value: str


class EnvVarRequirement(TemplateModel):
    class_: Literal["EnvVarRequirement"] = Field("EnvVarRequirement", alias="class")
    env_def: list[EnvDef] = Field(default_factory=list)


class ShellCommandRequirement(TemplateModel):
    class_: Literal["ShellCommandRequirement"] = Field("ShellCommandRequirement", alias="class")


class ResourceRequirement(TemplateModel):
    class_: Literal["ResourceRequirement"] = Field("ResourceRequirement", alias="class")
    cores_min: int | float | str | None = None
    cores_max: int | float | str | None = None
    ram_min: int | float | str | None = None
    ram_max: int | float | str | None = None
    tmpdir_min: int | float | str | None = None
    tmpdir_max: int | float | str | None = None
    outdir_min: int | float | str | None = None
    outdir_max: int | float | str | None = None


class ScatterFeatureRequirement(TemplateModel):
    class_: Literal["ScatterFeatureRequirement"] = Field("ScatterFeatureRequirement", alias="class")


class MultipleInputFeatureRequirement(TemplateModel):
    class_: Literal["MultipleInputFeatureRequirement"] = Field("MultipleInputFeatureRequirement", alias="class")


class SubworkflowFeatureRequirement(TemplateModel):
    class_: Literal["SubworkflowFeatureRequirement"] = Field("SubworkflowFeatureRequirement", alias="class")


class StepInputExpressionRequirement(TemplateModel):
    class_: Literal["StepInputExpressionRequirement"] = Field("StepInputExpressionRequirement", alias="class")


class ExtensionRequirement(TemplateModel):
    """Unrecognized or namespaced class, or a bare ``$import``; fields kept opaque."""

    class_: str | None = Field(None, alias="class")
    fields: dict[str, Any] = Field(default_factory=dict)


Requirement = Union[
    InlineJavascriptRequirement,
    SchemaDefRequirement,
    DockerRequirement,
    SoftwareRequirement,
    InitialWorkDirRequirement,
    EnvVarRequirement,
    ShellCommandRequirement,
    ResourceRequirement,
    ScatterFeatureRequirement,
    MultipleInputFeatureRequirement,
    SubworkflowFeatureRequirement,
    StepInputExpressionRequirement,
    ExtensionRequirement,
]


def requirement_class(req: Requirement) -> str:
    """Merge/lookup key of a requirement (``$import`` for bare imports)."""
    if req.class_:
        return req.class_
    return "$import:" + str(getattr(req, "fields", {}).get("$import", ""))
