"""Resolution configuration and the Command records produced by the resolver."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from cwlkit.contracts.params import OutputParameter
from cwlkit.io.fileops import read_text_safe

CONFIG_FILENAME = "cwlkit.yaml"


class ResolveConfig(BaseModel):
    """Runner-supplied settings; feeds the ``runtime`` expression context.

    The two ``intermediate_*_handling`` settings do not affect resolution;
    they are reported by :meth:`handling` for the runner that executes the
    commands.
    """

    output_dir: str = ""
    tmp_dir_prefix: str = "/tmp"
    tmp_out_dir_prefix: str = "/tmp"
    cores: int = 1
    ram: int = 1024
    outdir_size: int = 1024
    tmpdir_size: int = 1024
    env: list[str] = Field(default_factory=list)
    intermediate_output_handling: Literal["move", "leave", "copy"] = "move"
    intermediate_tmp_handling: Literal["rm", "leave"] = "rm"

    def runtime(self) -> dict[str, Any]:
        return {
            "outdir": self.output_dir,
            "tmpdir": self.tmp_dir_prefix,
            "cores": self.cores,
            "ram": self.ram,
            "outdirSize": self.outdir_size,
            "tmpdirSize": self.tmpdir_size,
        }

    def handling(self) -> dict[str, str]:
        return {
            "intermediate_output": self.intermediate_output_handling,
            "intermediate_tmp": self.intermediate_tmp_handling,
        }

    @classmethod
    def load(cls, path: str | Path) -> "ResolveConfig":
        """Load configuration from a YAML file."""
        text = read_text_safe(path)
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: configuration must be a mapping")
        return cls(**data)

    @classmethod
    def load_from_dir(cls, directory: str | Path) -> "ResolveConfig | None":
        """Try to load cwlkit.yaml from a directory. Returns None if not found."""
        path = Path(directory) / CONFIG_FILENAME
        if path.exists():
            return cls.load(path)
        return None


class Command(BaseModel):
    """One concrete invocation, ready for a process-launching collaborator."""

    id: str = ""
    cmd: list[str] = Field(default_factory=list)
    via_shell: bool = False
    shell_quote: bool = True
    no_quote: list[int] = Field(default_factory=list)
    cwd: str = ""
    tmp_prefix: str = ""
    stdin: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    inputs: dict[str, Any] = Field(default_factory=dict)
    outputs: list[OutputParameter] = Field(default_factory=list)
    expression: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    deferred: bool = False
    scatter_index: list[int] = Field(default_factory=list)
    scatter: list[str] = Field(default_factory=list)
    scatter_method: str | None = None
    docker_image: str | None = None
    resources: dict[str, Any] = Field(default_factory=dict)
    success_codes: list[int] = Field(default_factory=list)

    def shell_line(self) -> str:
        """Render the command for ``sh -c``, leaving ``no_quote`` tokens unescaped."""
        parts = []
        for index, token in enumerate(self.cmd):
            if self.via_shell and index in self.no_quote:
                parts.append(token)
            else:
                parts.append(shlex.quote(token))
        if self.stdin:
            parts.append("< " + shlex.quote(self.stdin))
        if self.stdout:
            parts.append("> " + shlex.quote(self.stdout))
        if self.stderr:
            parts.append("2> " + shlex.quote(self.stderr))
        return " ".join(parts)
