"""Tests for collecting outputs from a command's output directory."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cwlkit.contracts.commands import ResolveConfig
from cwlkit.contracts.common import FileOperationError
from cwlkit.engine.outputs import OUTPUT_OBJECT_FILE, OutputResolver, resolve_command_outputs
from cwlkit.engine.resolver import Resolver


def _outputs(decode_yaml, outputs_yaml: str):
    return decode_yaml(f"""
class: CommandLineTool
baseCommand: tool
inputs: []
outputs:
{outputs_yaml}
""").outputs


def test_glob_single_file(decode_yaml, write_file, tmp_path: Path):
    write_file("result.txt", "hello")
    outputs = _outputs(decode_yaml, """
  result:
    type: File
    outputBinding: {glob: result.txt}
""")
    assert OutputResolver().resolve(outputs, tmp_path) == {
        "result": {
            "class": "File",
            "location": "result.txt",
            "size": 5,
            "checksum": "sha1$aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d",
        }
    }


def test_optional_output_may_be_absent(decode_yaml, tmp_path: Path):
    outputs = _outputs(decode_yaml, """
  maybe:
    type: File?
    outputBinding: {glob: missing.txt}
""")
    assert OutputResolver().resolve(outputs, tmp_path) == {"maybe": None}


def test_required_output_must_exist(decode_yaml, tmp_path: Path):
    outputs = _outputs(decode_yaml, """
  result:
    type: File
    outputBinding: {glob: missing.txt}
""")
    with pytest.raises(FileOperationError) as exc:
        OutputResolver().resolve(outputs, tmp_path)
    assert exc.value.details["output"] == "result"


def test_array_output_is_sorted(decode_yaml, write_file, tmp_path: Path):
    write_file("b.txt", "b")
    write_file("a.txt", "a")
    write_file("c.log", "c")
    outputs = _outputs(decode_yaml, """
  texts:
    type: File[]
    outputBinding: {glob: "*.txt"}
""")
    result = OutputResolver().resolve(outputs, tmp_path)
    assert [e["location"] for e in result["texts"]] == ["a.txt", "b.txt"]


def test_load_contents_and_output_eval(decode_yaml, write_file, tmp_path: Path):
    write_file("count.txt", "42\n")
    outputs = _outputs(decode_yaml, """
  count:
    type: string
    outputBinding:
      glob: count.txt
      loadContents: true
      outputEval: $(self[0].contents)
""")
    assert OutputResolver().resolve(outputs, tmp_path) == {"count": "42\n"}


def test_glob_expression(decode_yaml, write_file, tmp_path: Path):
    write_file("report.txt", "r")
    outputs = _outputs(decode_yaml, """
  report:
    type: File
    outputBinding: {glob: $(inputs.name).txt}
""")
    result = OutputResolver(inputs={"name": "report"}).resolve(outputs, tmp_path)
    assert result["report"]["location"] == "report.txt"


def test_secondary_files(decode_yaml, write_file, tmp_path: Path):
    write_file("r.bam", "bam")
    write_file("r.bam.bai", "index")
    outputs = _outputs(decode_yaml, """
  reads:
    type: File
    secondaryFiles:
      - .bai
      - {pattern: .csi, required: false}
    outputBinding: {glob: r.bam}
""")
    reads = OutputResolver().resolve(outputs, tmp_path)["reads"]
    assert [f["location"] for f in reads["secondaryFiles"]] == ["r.bam.bai"]


def test_missing_required_secondary_file(decode_yaml, write_file, tmp_path: Path):
    write_file("r.bam", "bam")
    outputs = _outputs(decode_yaml, """
  reads:
    type: File
    secondaryFiles: [.bai]
    outputBinding: {glob: r.bam}
""")
    with pytest.raises(FileOperationError):
        OutputResolver().resolve(outputs, tmp_path)


def test_directory_output(decode_yaml, write_file, tmp_path: Path):
    write_file("res/x.txt", "x")
    outputs = _outputs(decode_yaml, """
  res:
    type: Directory
    outputBinding: {glob: res}
""")
    res = OutputResolver().resolve(outputs, tmp_path)["res"]
    assert res["class"] == "Directory"
    assert res["listing"][0]["location"] == "res/x.txt"


def test_record_output(decode_yaml, write_file, tmp_path: Path):
    write_file("log.txt", "log")
    outputs = _outputs(decode_yaml, """
  summary:
    type:
      type: record
      fields:
        log: {type: File, outputBinding: {glob: log.txt}}
        extra: {type: "File?", outputBinding: {glob: none.txt}}
""")
    summary = OutputResolver().resolve(outputs, tmp_path)["summary"]
    assert summary["log"]["location"] == "log.txt"
    assert summary["extra"] is None


def test_output_object_file_wins(decode_yaml, write_file, tmp_path: Path):
    write_file(OUTPUT_OBJECT_FILE, json.dumps({"answer": 42}))
    outputs = _outputs(decode_yaml, """
  result:
    type: File
    outputBinding: {glob: missing.txt}
""")
    assert OutputResolver().resolve(outputs, tmp_path) == {"answer": 42}


def test_unreadable_output_object_file(write_file, tmp_path: Path):
    write_file(OUTPUT_OBJECT_FILE, "{not json")
    with pytest.raises(FileOperationError):
        OutputResolver().resolve([], tmp_path)


def test_resolve_command_outputs_captures_stdout(decode_yaml, tmp_path: Path):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
stdout: log.txt
inputs: []
outputs:
  out: stdout
""")
    command, = Resolver(root, ResolveConfig(output_dir=str(tmp_path))).resolve({})
    (tmp_path / "log.txt").write_text("printed\n")
    result = resolve_command_outputs(command)
    assert result["out"]["location"] == "log.txt"
    assert result["out"]["size"] == 8
