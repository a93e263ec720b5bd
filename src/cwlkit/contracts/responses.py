"""Command-specific result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    """Result of a validation command."""

    valid: bool = True
    checks: list[dict[str, Any]] = Field(default_factory=list)


class ResolveResult(BaseModel):
    """Result of ``cwlkit resolve``."""

    entry: str | None = None
    command_count: int = 0
    commands: list[dict[str, Any]] = Field(default_factory=list)
    shell_lines: list[str] = Field(default_factory=list)
    handling: dict[str, str] = Field(default_factory=dict)
