"""Tests for CLI commands via Typer test runner."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

import cwlkit
from cwlkit.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["ok"] is True
    assert data["result"]["version"] == cwlkit.__version__


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == cwlkit.__version__


def test_decode(documents_dir: Path):
    result = runner.invoke(app, ["decode", str(documents_dir / "cat.cwl")])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["command"] == "decode"
    assert data["result"]["class"] == "CommandLineTool"
    assert data["result"]["inputs"] == ["file"]
    assert data["result"]["outputs"] == ["out"]
    assert "document" not in data["result"]


def test_decode_full(documents_dir: Path):
    result = runner.invoke(app, ["decode", str(documents_dir / "cat.cwl"), "--full"])
    assert result.exit_code == 0
    document = json.loads(result.stdout)["result"]["document"]
    assert document["class"] == "CommandLineTool"
    assert document["base_command"] == ["cat"]


def test_decode_graph_entry(documents_dir: Path):
    result = runner.invoke(app, ["decode", f"{documents_dir / 'packed.cwl'}#main"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["result"]["steps"] == ["count"]
    assert data["target"]["entry"] == "main"


def test_decode_broken(documents_dir: Path):
    result = runner.invoke(app, ["decode", str(documents_dir / "broken.cwl")])
    assert result.exit_code == 20
    data = json.loads(result.stdout)
    assert data["ok"] is False
    assert data["errors"][0]["code"] == "ERR_DECODE_FAILED"


def test_validate_clean(documents_dir: Path):
    result = runner.invoke(app, ["validate", str(documents_dir / "two-step.cwl")])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["result"]["valid"] is True


def test_validate_bad_wiring(documents_dir: Path):
    result = runner.invoke(app, ["validate", str(documents_dir / "bad-wiring.cwl")])
    assert result.exit_code == 10
    data = json.loads(result.stdout)
    assert data["ok"] is False
    assert data["errors"][0]["code"] == "ERR_VALIDATION_FAILED"
    assert len(data["errors"][0]["details"]["checks"]) == 3


def test_resolve_tool(documents_dir: Path):
    result = runner.invoke(app, [
        "resolve", str(documents_dir / "cat.cwl"), "-p", str(documents_dir / "cat-job.yml"),
    ])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["result"]["command_count"] == 1
    command = data["result"]["commands"][0]
    assert command["cmd"] == ["cat", str((documents_dir / "a.txt").resolve())]
    assert command["stdout"] == "cat-out.txt"
    assert data["result"]["shell_lines"][0].endswith("> cat-out.txt")
    assert data["result"]["handling"] == {"intermediate_output": "move", "intermediate_tmp": "rm"}


def test_resolve_workflow(documents_dir: Path, tmp_path: Path):
    result = runner.invoke(app, [
        "resolve", str(documents_dir / "two-step.cwl"),
        "-p", str(documents_dir / "two-step-job.yml"),
        "--tmp-out-prefix", str(tmp_path),
    ])
    assert result.exit_code == 0
    commands = json.loads(result.stdout)["result"]["commands"]
    assert [c["id"] for c in commands] == ["step1", "step2"]
    assert commands[1]["deferred"] is True
    assert commands[1]["dependencies"] == ["step1"]
    assert commands[0]["cwd"] == str(Path(tmp_path) / "step1")


def test_resolve_packed_entry(documents_dir: Path):
    result = runner.invoke(app, [
        "resolve", str(documents_dir / "packed.cwl"), "-e", "wc",
        "-p", str(documents_dir / "cat-job.yml"),
    ])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["result"]["entry"] == "wc"
    assert data["result"]["commands"][0]["cmd"][:2] == ["wc", "-l"]


def test_resolve_missing_input(documents_dir: Path):
    result = runner.invoke(app, ["resolve", str(documents_dir / "two-step.cwl")])
    assert result.exit_code == 30
    data = json.loads(result.stdout)
    assert data["errors"][0]["code"] == "ERR_MISSING_INPUT"
    assert data["errors"][0]["details"] == {"input": "message"}


def test_resolve_trace(documents_dir: Path, tmp_path: Path):
    trace = tmp_path / "trace.json"
    result = runner.invoke(app, [
        "resolve", str(documents_dir / "cat.cwl"),
        "-p", str(documents_dir / "cat-job.yml"),
        "--trace", str(trace),
    ])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["result"]["trace"] == str(trace)
    entries = json.loads(trace.read_text())["entries"]
    assert [e["category"] for e in entries] == ["resolve.start", "resolve.command"]


def test_resolve_bad_config(documents_dir: Path, tmp_path: Path):
    config = tmp_path / "cwlkit.yaml"
    config.write_text("- not a mapping\n")
    result = runner.invoke(app, [
        "resolve", str(documents_dir / "cat.cwl"), "--config", str(config),
    ])
    assert result.exit_code == 10
    assert json.loads(result.stdout)["errors"][0]["code"] == "ERR_CONFIG_INVALID"


def test_resolve_config_file(documents_dir: Path, tmp_path: Path):
    config = tmp_path / "cwlkit.yaml"
    config.write_text(f"output_dir: {tmp_path / 'work'}\ncores: 3\n")
    result = runner.invoke(app, [
        "resolve", str(documents_dir / "cat.cwl"),
        "-p", str(documents_dir / "cat-job.yml"),
        "-c", str(config),
    ])
    assert result.exit_code == 0
    command = json.loads(result.stdout)["result"]["commands"][0]
    assert command["cwd"] == str(tmp_path / "work")
    assert command["env"]["HOME"] == str(tmp_path / "work")


def test_outputs(documents_dir: Path, tmp_path: Path):
    (tmp_path / "cat-out.txt").write_text("hello from a\n")
    result = runner.invoke(app, [
        "outputs", str(documents_dir / "cat.cwl"),
        "-p", str(documents_dir / "cat-job.yml"),
        "--output-dir", str(tmp_path),
    ])
    assert result.exit_code == 0
    out = json.loads(result.stdout)["result"]["out"]
    assert out["class"] == "File"
    assert out["location"] == "cat-out.txt"
    assert out["size"] == 13


def test_outputs_rejects_workflow(documents_dir: Path, tmp_path: Path):
    result = runner.invoke(app, [
        "outputs", str(documents_dir / "two-step.cwl"),
        "-p", str(documents_dir / "two-step-job.yml"),
        "--output-dir", str(tmp_path),
    ])
    assert result.exit_code == 10
    assert json.loads(result.stdout)["errors"][0]["code"] == "ERR_USAGE"
