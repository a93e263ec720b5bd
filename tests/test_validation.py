"""Tests for document validation."""

from pathlib import Path

from cwlkit.engine.decoder import load_document
from cwlkit.validation.validators import validate_document


def _failed(result):
    return [c for c in result.checks if not c.get("passed")]


def test_validate_two_step_clean(documents_dir: Path):
    result = validate_document(load_document(documents_dir / "two-step.cwl"))
    assert result.valid is True
    assert {c["type"] for c in result.checks} >= {"source_valid", "output_source_valid"}


def test_validate_bad_wiring(documents_dir: Path):
    result = validate_document(load_document(documents_dir / "bad-wiring.cwl"))
    assert result.valid is False
    failed = _failed(result)
    assert {c["type"] for c in failed} == {"source_valid", "scatter_valid", "output_source_valid"}
    targets = {c["target"] for c in failed}
    assert "step1/file" in targets
    assert "result" in targets


def test_validate_packed_graph(documents_dir: Path):
    result = validate_document(load_document(documents_dir / "packed.cwl"))
    assert result.valid is True
    targets = {c["target"] for c in result.checks}
    assert "#main:count/file" in targets
    assert "#main:count" in targets


def test_missing_run_reference(decode_yaml):
    root = decode_yaml("""
cwlVersion: v1.2
$graph:
  - id: main
    class: Workflow
    inputs: []
    outputs: []
    steps:
      - id: s
        run: "#nope"
        in: []
        out: []
""")
    result = validate_document(root)
    assert result.valid is False
    assert _failed(result)[0]["type"] == "run_reference"


def test_duplicate_ids(decode_yaml):
    root = decode_yaml("""
cwlVersion: v1.2
class: CommandLineTool
baseCommand: echo
inputs:
  - {id: x, type: string}
  - {id: x, type: int}
outputs: []
""")
    result = validate_document(root)
    assert result.valid is False
    failed = _failed(result)
    assert failed[0]["type"] == "unique_ids"
    assert failed[0]["target"] == "inputs"


def test_scatter_over_several_inputs_needs_method(decode_yaml):
    root = decode_yaml("""
cwlVersion: v1.2
class: Workflow
inputs: {a: "string[]", b: "string[]"}
outputs: []
steps:
  s:
    run: tool.cwl
    scatter: [x, y]
    in: {x: a, y: b}
    out: []
""")
    result = validate_document(root)
    assert result.valid is False
    messages = [c["message"] for c in _failed(result)]
    assert any("scatterMethod" in m for m in messages)


def test_inline_run_documents_are_checked(decode_yaml):
    root = decode_yaml("""
cwlVersion: v1.2
class: Workflow
inputs: {}
outputs: []
steps:
  s:
    run:
      class: CommandLineTool
      baseCommand: echo
      inputs:
        - {id: v, type: string}
        - {id: v, type: string}
      outputs: []
    in: {}
    out: []
""")
    failed = _failed(validate_document(root))
    assert failed[0]["target"] == "s.inputs"


def test_missing_cwl_version_is_a_warning(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs: []
outputs: []
""")
    result = validate_document(root)
    assert result.valid is True
    assert result.checks[0]["severity"] == "warning"


def test_clean_tool_reports_no_issues(decode_yaml):
    root = decode_yaml("""
cwlVersion: v1.2
class: CommandLineTool
baseCommand: echo
inputs: []
outputs: []
""")
    result = validate_document(root)
    assert result.valid is True
    assert result.checks == [{"type": "document_hygiene", "passed": True, "message": "No issues detected."}]
