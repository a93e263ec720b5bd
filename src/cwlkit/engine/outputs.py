"""Output resolver: collect a finished command's outputs from its output directory.

Results follow the CWL output-object convention: File entries carry
``class``, ``location`` (relative to the output directory), ``size`` and a
``sha1$`` checksum; Directory entries carry a ``listing``.
"""

from __future__ import annotations

import glob
import json
import os
from pathlib import Path
from typing import Any

from cwlkit.contracts.commands import Command
from cwlkit.contracts.common import FileOperationError
from cwlkit.contracts.params import OutputParameter, SecondaryFile
from cwlkit.contracts.types import (
    ArrayType,
    Binding,
    CwlType,
    RecordType,
    ScalarType,
    expand_literal,
    is_optional,
    non_null,
)
from cwlkit.engine.expressions import ExpressionEvaluator, ParameterReferenceEvaluator, evaluate, is_expression
from cwlkit.engine.files import entry_for, file_object, secondary_files_for
from cwlkit.io.fileops import read_head, read_text_safe

OUTPUT_OBJECT_FILE = "cwl.output.json"


class OutputResolver:
    """Collects output values for one command run.

    ``inputs`` and ``runtime`` feed the expression context of ``glob`` and
    ``outputEval`` expressions.
    """

    def __init__(
        self,
        evaluator: ExpressionEvaluator | None = None,
        *,
        inputs: dict[str, Any] | None = None,
        runtime: dict[str, Any] | None = None,
    ) -> None:
        self.evaluator = evaluator or ParameterReferenceEvaluator()
        self.inputs = inputs or {}
        self.runtime = runtime or {}

    def resolve(
        self,
        outputs: list[OutputParameter],
        output_dir: str | Path,
        stdout_path: str | None = None,
        stderr_path: str | None = None,
    ) -> dict[str, Any]:
        output_dir = Path(output_dir)
        declared = output_dir / OUTPUT_OBJECT_FILE
        if declared.exists():
            try:
                return json.loads(read_text_safe(declared))
            except (OSError, ValueError) as e:
                raise FileOperationError(
                    f"Cannot read {declared}: {e}", details={"path": str(declared)}
                ) from e

        streams = {"stdout": stdout_path, "stderr": stderr_path}
        result: dict[str, Any] = {}
        for output in outputs:
            value = self._collect(output.types, output.binding, output.secondary_files, output_dir, streams)
            if value is None and not is_optional(output.types):
                raise FileOperationError(
                    f"Required output '{output.id}' was not produced",
                    details={"output": output.id, "output_dir": str(output_dir)},
                )
            result[output.id] = value
        return result

    # ------------------------------------------------------------------
    def _evaluate(self, expression: Any, self_value: Any = None) -> Any:
        context = {"inputs": self.inputs, "self": self_value, "runtime": self.runtime}
        return evaluate(self.evaluator, expression, context)

    def _collect(
        self,
        types: list[CwlType],
        binding: Binding | None,
        secondary: list[SecondaryFile],
        output_dir: Path,
        streams: dict[str, str | None],
    ) -> Any:
        candidates = [expand_literal(t) for t in non_null(types)]
        typ = candidates[0] if candidates else None

        if isinstance(typ, ScalarType) and typ.name in streams:
            path = streams[typ.name]
            if not path:
                return None
            return self._entry(self._absolute(path, output_dir), output_dir)

        if isinstance(typ, RecordType) and (binding is None or not binding.glob):
            return {
                field.name: self._collect(field.types, field.binding, [], output_dir, streams)
                for field in typ.fields
            }

        if binding is None:
            return None

        entries = []
        for pattern in self._patterns(binding):
            for match in sorted(glob.glob(str(self._absolute(pattern, output_dir)))):
                entry = self._entry(Path(match), output_dir)
                if entry["class"] == "File":
                    if binding.load_contents:
                        entry["contents"] = self._contents(Path(match))
                    if secondary:
                        entry["secondaryFiles"] = self._secondary(Path(match), secondary, output_dir)
                entries.append(entry)

        if binding.output_eval is not None:
            return self._evaluate(binding.output_eval, entries)
        if isinstance(typ, ArrayType):
            return entries
        if isinstance(typ, ScalarType) and typ.name in ("File", "Directory", "Any"):
            return entries[0] if entries else None
        return None

    def _patterns(self, binding: Binding) -> list[str]:
        patterns: list[str] = []
        for pattern in binding.glob:
            value = self._evaluate(pattern) if is_expression(pattern) else pattern
            if isinstance(value, list):
                patterns.extend(str(v) for v in value if v is not None)
            elif value is not None:
                patterns.append(str(value))
        return patterns

    @staticmethod
    def _absolute(path: str | Path, output_dir: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else output_dir / path

    @staticmethod
    def _entry(path: Path, output_dir: Path) -> dict[str, Any]:
        if not path.exists():
            raise FileOperationError(f"Output {path} does not exist", details={"path": str(path)})
        location = os.path.relpath(path, output_dir)
        return entry_for(path, Path(location).as_posix())

    @staticmethod
    def _contents(path: Path) -> str:
        try:
            return read_head(path)
        except OSError as e:
            raise FileOperationError(f"Cannot load contents of {path}: {e}", details={"path": str(path)}) from e

    def _secondary(self, primary: Path, declarations: list[SecondaryFile], output_dir: Path) -> list[dict[str, Any]]:
        primary_obj = file_object({"class": "File", "location": str(primary)}, list_directory=False)
        found = []
        for decl in declarations:
            for candidate in secondary_files_for(primary_obj, [decl], self._evaluate):
                path = Path(candidate["path"])
                if path.exists():
                    found.append(self._entry(path, output_dir))
                elif decl.required is not False:
                    raise FileOperationError(
                        f"Required secondary file {path.name} of {primary.name} is missing",
                        details={"primary": str(primary), "pattern": decl.pattern},
                    )
        return found


def resolve_command_outputs(
    command: Command,
    output_dir: str | Path | None = None,
    evaluator: ExpressionEvaluator | None = None,
) -> dict[str, Any]:
    """Collect the outputs of a resolved command after it has run."""
    output_dir = Path(output_dir or command.cwd or ".")
    runtime = {"outdir": str(output_dir), "tmpdir": command.tmp_prefix}
    resolver = OutputResolver(evaluator, inputs=command.inputs, runtime=runtime)
    return resolver.resolve(command.outputs, output_dir, command.stdout, command.stderr)
