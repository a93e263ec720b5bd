"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from cwlkit.contracts.document import Root
from cwlkit.engine.decoder import decode


FIXTURES_DIR = Path(__file__).parent / "fixtures"
DOCUMENTS_DIR = FIXTURES_DIR / "documents"


def _decode_yaml(text: str) -> Root:
    return decode(yaml.safe_load(text))


@pytest.fixture()
def decode_yaml() -> Callable[[str], Root]:
    """Parse and decode an inline YAML document."""
    return _decode_yaml


@pytest.fixture()
def documents_dir() -> Path:
    return DOCUMENTS_DIR


@pytest.fixture()
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a text file under tmp_path and return its path."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    return _write


@pytest.fixture()
def cat_tool() -> Root:
    """``cat`` with one File input at position 1."""
    return _decode_yaml("""
class: CommandLineTool
baseCommand: cat
inputs:
  file:
    type: File
    inputBinding: {position: 1}
outputs: []
""")


@pytest.fixture()
def two_step_tree() -> dict[str, Any]:
    """A workflow whose second step consumes the first step's stdout."""
    return yaml.safe_load("""
class: Workflow
inputs:
  message: string
outputs: []
steps:
  - id: step1
    run:
      class: CommandLineTool
      baseCommand: echo
      inputs:
        msg: {type: string, inputBinding: {position: 1}}
      outputs:
        out: stdout
    in: {msg: message}
    out: [out]
  - id: step2
    run:
      class: CommandLineTool
      baseCommand: cat
      inputs:
        file: {type: File, inputBinding: {position: 1}}
      outputs: []
    in: {file: step1/out}
    out: []
""")
