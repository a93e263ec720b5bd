"""Tests for requirement inheritance and lookup."""

from __future__ import annotations

from cwlkit.contracts.requirements import (
    DockerRequirement,
    EnvDef,
    EnvVarRequirement,
    ExtensionRequirement,
    InitialWorkDirRequirement,
    ResourceRequirement,
    ShellCommandRequirement,
    WorkDirEntry,
    requirement_class,
)
from cwlkit.engine.requirements import docker_image, effective, find_requirement, merge_requirements


def _env(**values: str) -> EnvVarRequirement:
    return EnvVarRequirement(env_def=[EnvDef(name=k, value=v) for k, v in values.items()])


def test_merge_without_parent_returns_child():
    child = [ShellCommandRequirement()]
    assert merge_requirements([], child) == child


def test_parent_only_classes_are_appended():
    merged = merge_requirements([DockerRequirement(docker_pull="alpine")], [ShellCommandRequirement()])
    assert [requirement_class(r) for r in merged] == ["ShellCommandRequirement", "DockerRequirement"]


def test_child_scalar_fields_win():
    merged = merge_requirements(
        [ResourceRequirement(cores_min=8)],
        [ResourceRequirement(cores_min=2)],
    )
    assert len(merged) == 1
    assert merged[0].cores_min == 2


def test_env_defs_union_by_name_child_first():
    merged = merge_requirements([_env(A="parent", B="b")], [_env(A="child", C="c")])
    assert len(merged) == 1
    assert [(e.name, e.value) for e in merged[0].env_def] == [("A", "child"), ("C", "c"), ("B", "b")]


def test_listing_union_by_entryname():
    parent = InitialWorkDirRequirement(listing=[
        WorkDirEntry(entryname="a.txt", entry="parent"),
        WorkDirEntry(entryname="b.txt", entry="b"),
    ])
    child = InitialWorkDirRequirement(listing=[WorkDirEntry(entryname="a.txt", entry="child")])
    merged = merge_requirements([parent], [child])
    assert [(e.entryname, e.entry) for e in merged[0].listing] == [("a.txt", "child"), ("b.txt", "b")]


def test_merge_is_idempotent():
    parent = [_env(A="1"), DockerRequirement(docker_pull="alpine")]
    child = [_env(B="2")]
    once = merge_requirements(parent, child)
    assert merge_requirements(parent, once) == once


def test_extension_classes_merge_by_class():
    parent = [ExtensionRequirement(**{"class": "acme:Thing", "fields": {"x": 1}})]
    child = [ExtensionRequirement(**{"class": "acme:Thing", "fields": {"x": 2}})]
    merged = merge_requirements(parent, child)
    assert len(merged) == 1
    assert merged[0].fields == {"x": 2}


def test_effective_prefers_requirements_over_hints():
    reqs = [DockerRequirement(docker_pull="req")]
    hints = [DockerRequirement(docker_pull="hint")]
    assert effective(reqs, hints, DockerRequirement).docker_pull == "req"
    assert effective([], hints, DockerRequirement).docker_pull == "hint"
    assert find_requirement([], DockerRequirement) is None


def test_docker_image():
    assert docker_image([], [DockerRequirement(docker_image_id="img:1")]) == "img:1"
    assert docker_image([], []) is None
