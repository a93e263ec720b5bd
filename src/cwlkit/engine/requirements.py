"""Requirement/hint inheritance between document scopes."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from cwlkit.contracts.requirements import DockerRequirement, Requirement, requirement_class

R = TypeVar("R")

# class -> (list field, key of one entry)
_LIST_FIELDS: dict[str, tuple[str, Callable[[Any], str]]] = {
    "EnvVarRequirement": ("env_def", lambda e: e.name),
    "InitialWorkDirRequirement": ("listing", lambda e: e.key),
    "InlineJavascriptRequirement": ("expression_lib", lambda e: f"{e.kind}:{e.value}"),
}


def _union(child: list, parent: list, key: Callable[[Any], str]) -> list:
    seen = {key(entry) for entry in child}
    return list(child) + [entry for entry in parent if key(entry) not in seen]


def _merge_one(child: Requirement, parent: Requirement) -> Requirement:
    fields = _LIST_FIELDS.get(requirement_class(child))
    if fields is None:
        return child
    field, key = fields
    merged = _union(getattr(child, field), getattr(parent, field), key)
    if merged == getattr(child, field):
        return child
    return child.model_copy(update={field: merged})


def merge_requirements(parent: list[Requirement], child: list[Requirement]) -> list[Requirement]:
    """Merge a parent scope's requirements (or hints) into a child scope's.

    Child entries keep their order and are never overridden.  For classes
    present on both sides, list-valued fields union by key with the child's
    entries first.  Classes only the parent declares are appended whole.
    """
    if not parent:
        return list(child)
    parents_by_class: dict[str, Requirement] = {}
    for req in parent:
        parents_by_class.setdefault(requirement_class(req), req)

    merged: list[Requirement] = []
    child_classes: set[str] = set()
    for req in child:
        cls = requirement_class(req)
        inherited = parents_by_class.get(cls) if cls not in child_classes else None
        child_classes.add(cls)
        merged.append(_merge_one(req, inherited) if inherited is not None else req)

    appended: set[str] = set()
    for req in parent:
        cls = requirement_class(req)
        if cls in child_classes or cls in appended:
            continue
        appended.add(cls)
        merged.append(req)
    return merged


def find_requirement(requirements: list[Requirement], kind: type[R]) -> R | None:
    for req in requirements:
        if isinstance(req, kind):
            return req
    return None


def effective(requirements: list[Requirement], hints: list[Requirement], kind: type[R]) -> R | None:
    """Look up a class, preferring a requirement over a hint."""
    found = find_requirement(requirements, kind)
    if found is not None:
        return found
    return find_requirement(hints, kind)


def docker_image(requirements: list[Requirement], hints: list[Requirement]) -> str | None:
    docker = effective(requirements, hints, DockerRequirement)
    if docker is None:
        return None
    return docker.docker_pull or docker.docker_image_id or docker.docker_import
