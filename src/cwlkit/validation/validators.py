"""Structural checks on decoded documents, run before resolution."""

from __future__ import annotations

from collections import Counter
from typing import Any

from cwlkit.contracts.document import Root, Step
from cwlkit.contracts.responses import ValidationResult


def _check(kind: str, target: str, passed: bool, message: str, **extra: Any) -> dict[str, Any]:
    return {"type": kind, "target": target, "passed": passed, "message": message, **extra}


def _unique_ids(root: Root, prefix: str) -> list[dict[str, Any]]:
    checks = []
    for kind, ids in (
        ("inputs", [p.id for p in root.inputs]),
        ("outputs", [p.id for p in root.outputs]),
        ("steps", [s.id for s in root.steps]),
    ):
        dupes = sorted(i for i, n in Counter(ids).items() if n > 1)
        if dupes:
            checks.append(_check("unique_ids", prefix + kind, False, f"Duplicate {kind} ids: {dupes}"))
    return checks


def _source_known(root: Root, source: str) -> bool:
    step_id, sep, output = source.partition("/")
    if sep:
        step = root.find_step(step_id)
        if step is not None:
            return any(o.id == output for o in step.outputs)
    return root.find_input(source) is not None


def _check_step(root: Root, step: Step, prefix: str, graph: Root | None) -> list[dict[str, Any]]:
    checks = []
    target = prefix + step.id
    for step_input in step.inputs:
        for source in step_input.source:
            known = _source_known(root, source)
            checks.append(_check(
                "source_valid", f"{target}/{step_input.id}", known,
                f"Source '{source}' resolves" if known
                else f"Source '{source}' is neither a workflow input nor a step output",
            ))

    for name in step.scatter:
        known = step.find_input(name) is not None
        checks.append(_check(
            "scatter_valid", target, known,
            f"Scatter input '{name}' is a step input" if known
            else f"Scatter input '{name}' is not an input of step '{step.id}'",
        ))
    if len(step.scatter) > 1 and step.scatter_method is None:
        checks.append(_check(
            "scatter_valid", target, False,
            "Scattering over several inputs needs a scatterMethod",
        ))

    reference = step.run.reference
    if reference is not None and reference.startswith("#"):
        found = graph is not None and graph.find_graph(reference) is not None
        checks.append(_check(
            "run_reference", target, found,
            f"Run target '{reference}' found in $graph" if found
            else f"Run target '{reference}' is not in the $graph",
        ))
    elif step.run.document is not None:
        checks.extend(_check_root(step.run.document, f"{target}.", graph))
    return checks


def _check_root(root: Root, prefix: str, graph: Root | None) -> list[dict[str, Any]]:
    checks = _unique_ids(root, prefix)
    for step in root.steps:
        checks.extend(_check_step(root, step, prefix, graph))
    if root.is_workflow:
        for output in root.outputs:
            for source in output.output_source:
                known = _source_known(root, source)
                checks.append(_check(
                    "output_source_valid", prefix + output.id, known,
                    f"Output source '{source}' resolves" if known
                    else f"Output source '{source}' is neither a workflow input nor a step output",
                ))
    return checks


def validate_document(root: Root) -> ValidationResult:
    """Check ids, step wiring, scatter declarations and run references."""
    checks: list[dict[str, Any]] = []
    if root.graph:
        for entry in root.graph:
            checks.extend(_check_root(entry, f"#{entry.id}:", root))
    else:
        checks.extend(_check_root(root, "", None))

    if root.cwl_version is None and not any(g.cwl_version for g in root.graph):
        checks.append({
            "type": "document_hygiene",
            "category": "cwl_version",
            "passed": True,
            "severity": "warning",
            "message": "Document does not declare cwlVersion.",
        })

    if not checks:
        checks.append({
            "type": "document_hygiene",
            "passed": True,
            "message": "No issues detected.",
        })

    valid = all(c.get("passed", True) for c in checks)
    return ValidationResult(valid=valid, checks=checks)
