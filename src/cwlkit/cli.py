"""Typer CLI application: decode, validate, resolve and collect outputs."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

import cwlkit
from cwlkit.contracts.commands import ResolveConfig
from cwlkit.contracts.common import CwlError, ErrorDetail, Target
from cwlkit.contracts.responses import ResolveResult
from cwlkit.engine.dispatcher import (
    envelope_for_error,
    error_envelope,
    exit_code_for,
    print_response,
    success_envelope,
)
from cwlkit.observe.events import EventEmitter, Timer, TraceRecorder

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

_MAIN_HELP = """\
Decode Common Workflow Language documents and resolve them into concrete commands.

**Recommended workflow:**  decode → validate → resolve → outputs

1. `cwlkit decode tool.cwl`: typed document summary
2. `cwlkit validate wf.cwl`: ids, step wiring, scatter, run references
3. `cwlkit resolve wf.cwl -p job.yml`: one command per step (and scatter instance)
4. `cwlkit outputs tool.cwl -p job.yml --output-dir out/`: collect outputs after a run

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "warnings": [...], "metrics": {"duration_ms": N}}`

**Exit codes:** 0=success, 10=validation, 20=decode, 30=missing input, 40=expression, 50=io, 70=unsupported, 90=internal
"""

_RESOLVE_EPILOG = """\
**Examples:**

`cwlkit resolve tool.cwl -p job.yml`

`cwlkit resolve packed.cwl#main -p job.yml --output-dir /work/out`

`cwlkit resolve wf.cwl -p job.yml --events --trace trace.json`: NDJSON events on stderr

Settings are read from `--config`, else from `cwlkit.yaml` beside the document.
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(cwlkit.__version__)
        raise typer.Exit()


app = typer.Typer(
    name="cwlkit",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback(invoke_without_command=True)
def _callback(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
DocumentArg = Annotated[str, typer.Argument(help="Path to a .cwl document (append #id to pick a $graph entry)")]
ParamsOpt = Annotated[Optional[str], typer.Option("--params", "-p", help="Parameter (job) file, YAML or JSON")]
EntryOpt = Annotated[Optional[str], typer.Option("--entry", "-e", help="$graph entry id to resolve")]
ConfigOpt = Annotated[Optional[str], typer.Option("--config", "-c", help="Path to a cwlkit.yaml configuration")]
OutputDirOpt = Annotated[Optional[str], typer.Option("--output-dir", "-o", help="Output directory for the command")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _split(document: str, entry: str | None) -> tuple[str, str | None]:
    path, _, fragment = document.partition("#")
    return path, entry or fragment or None


def _load_config(command: str, config_path: str | None, document: str, target: Target) -> ResolveConfig:
    try:
        if config_path:
            return ResolveConfig.load(config_path)
        return ResolveConfig.load_from_dir(Path(document).resolve().parent) or ResolveConfig()
    except (OSError, ValueError, ValidationError) as e:
        _emit(error_envelope(command, "ERR_CONFIG_INVALID", f"Cannot load configuration: {e}", target=target))


# ---------------------------------------------------------------------------
# cwlkit version
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the cwlkit version.

    Example: `cwlkit version`
    """
    env = success_envelope("version", {"version": cwlkit.__version__})
    _emit(env)


# ---------------------------------------------------------------------------
# cwlkit decode
# ---------------------------------------------------------------------------
@app.command("decode")
def decode_cmd(
    document: DocumentArg,
    entry: EntryOpt = None,
    full: Annotated[bool, typer.Option("--full", help="Include the complete typed document")] = False,
):
    """Decode a document and report its typed structure.

    Returns the class, inputs, outputs, steps and `$graph` entries. With
    `--full` the whole decoded document is included.

    Example: `cwlkit decode tool.cwl --full`
    """
    from cwlkit.engine.decoder import load_document
    from cwlkit.engine.resolver import select_entry

    path, entry = _split(document, entry)
    target = Target(file=path, entry=entry)
    with Timer() as t:
        try:
            root = load_document(path)
            if entry:
                root = select_entry(root, entry)
        except CwlError as e:
            _emit(envelope_for_error("decode", e, target=target, duration_ms=t.elapsed_ms))
            return

    result = root.summary()
    if full:
        result["document"] = root.model_dump(mode="json", by_alias=True, exclude_none=True)
    _emit(success_envelope("decode", result, target=target, duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# cwlkit validate
# ---------------------------------------------------------------------------
@app.command("validate")
def validate_cmd(
    document: DocumentArg,
):
    """Validate a document's structure before resolving it.

    Checks unique ids, that step sources and workflow output sources
    resolve, that scatter variables name step inputs, and that `#id` run
    references exist in the `$graph`.

    Example: `cwlkit validate wf.cwl`
    """
    from cwlkit.engine.decoder import load_document
    from cwlkit.validation.validators import validate_document

    path, _ = _split(document, None)
    target = Target(file=path)
    with Timer() as t:
        try:
            root = load_document(path)
        except CwlError as e:
            _emit(envelope_for_error("validate", e, target=target, duration_ms=t.elapsed_ms))
            return
        result = validate_document(root)

    env = success_envelope("validate", result.model_dump(), target=target, duration_ms=t.elapsed_ms)
    if not result.valid:
        failed_checks = [c for c in result.checks if not c.get("passed", True)]
        env.ok = False
        env.errors = [
            ErrorDetail(
                code="ERR_VALIDATION_FAILED",
                message="Document validation failed",
                details={"checks": failed_checks},
            )
        ]
    _emit(env)


# ---------------------------------------------------------------------------
# cwlkit resolve
# ---------------------------------------------------------------------------
@app.command("resolve", epilog=_RESOLVE_EPILOG)
def resolve_cmd(
    document: DocumentArg,
    params: ParamsOpt = None,
    entry: EntryOpt = None,
    config_path: ConfigOpt = None,
    output_dir: OutputDirOpt = None,
    tmp_prefix: Annotated[Optional[str], typer.Option("--tmp-prefix", help="Prefix for temporary directories")] = None,
    tmp_out_prefix: Annotated[
        Optional[str], typer.Option("--tmp-out-prefix", help="Prefix for per-step output directories")
    ] = None,
    events: Annotated[bool, typer.Option("--events", help="Emit NDJSON lifecycle events on stderr")] = False,
    trace: Annotated[Optional[str], typer.Option("--trace", help="Write a JSON trace of resolution events")] = None,
):
    """Resolve a document and parameter file into concrete commands.

    A CommandLineTool yields one command; a Workflow yields one command per
    step and scatter instance, with ids like `step` or `step[0]` and a
    `dependencies` list. Commands whose arguments wait on another step's
    outputs are marked `deferred`.

    Example: `cwlkit resolve wf.cwl -p job.yml`
    """
    from cwlkit.engine.resolver import resolve_file

    path, entry = _split(document, entry)
    target = Target(file=path, params=params, entry=entry)
    config = _load_config("resolve", config_path, path, target)
    overrides = {
        "output_dir": str(Path(output_dir).resolve()) if output_dir else None,
        "tmp_dir_prefix": tmp_prefix,
        "tmp_out_dir_prefix": tmp_out_prefix,
    }
    config = config.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    recorder = TraceRecorder(document=path) if trace else None
    emitter = EventEmitter(enabled=events, trace=recorder)
    with Timer() as t:
        try:
            commands = resolve_file(path, params, config, entry=entry, emitter=emitter)
        except CwlError as e:
            _emit(envelope_for_error("resolve", e, target=target, duration_ms=t.elapsed_ms))
            return

    result = ResolveResult(
        entry=entry,
        command_count=len(commands),
        commands=[c.model_dump(mode="json", by_alias=True) for c in commands],
        shell_lines=[c.shell_line() for c in commands],
        handling=config.handling(),
    ).model_dump()
    if recorder is not None:
        result["trace"] = recorder.save(trace)
    _emit(success_envelope("resolve", result, target=target, duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# cwlkit outputs
# ---------------------------------------------------------------------------
@app.command("outputs")
def outputs_cmd(
    document: DocumentArg,
    output_dir: Annotated[str, typer.Option("--output-dir", "-o", help="Directory the command ran in")],
    params: ParamsOpt = None,
    entry: EntryOpt = None,
    config_path: ConfigOpt = None,
):
    """Collect a tool's outputs from the directory it ran in.

    Resolves the tool first (for `inputs` and stream names), then applies
    each output's `glob`, `loadContents`, `outputEval` and secondary files.
    A `cwl.output.json` in the directory takes precedence.

    Example: `cwlkit outputs tool.cwl -p job.yml --output-dir out/`
    """
    from cwlkit.engine.decoder import load_document
    from cwlkit.engine.expressions import ExpressionCapabilities, default_evaluator_factory
    from cwlkit.engine.outputs import resolve_command_outputs
    from cwlkit.engine.resolver import resolve_file, select_entry

    path, entry = _split(document, entry)
    target = Target(file=path, params=params, entry=entry)
    config = _load_config("outputs", config_path, path, target)
    config = config.model_copy(update={"output_dir": str(Path(output_dir).resolve())})

    with Timer() as t:
        try:
            root = select_entry(load_document(path), entry)
            if root.is_workflow or root.is_expression_tool:
                _emit(error_envelope(
                    "outputs", "ERR_USAGE",
                    f"outputs works on a CommandLineTool, not a {root.class_ or 'Workflow'}",
                    target=target,
                ))
                return
            commands = resolve_file(path, params, config, entry=entry)
            capabilities = ExpressionCapabilities.from_requirements(
                root.requirements + root.hints, base_dir=str(Path(path).resolve().parent)
            )
            evaluator = default_evaluator_factory(capabilities)
            result = resolve_command_outputs(commands[0], config.output_dir, evaluator)
        except CwlError as e:
            _emit(envelope_for_error("outputs", e, target=target, duration_ms=t.elapsed_ms))
            return

    _emit(success_envelope("outputs", result, target=target, duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------
def main() -> None:
    try:
        app()
    except SystemExit:
        raise
    except Exception as exc:
        env = error_envelope(
            "unknown",
            "ERR_INTERNAL",
            str(exc),
        )
        print_response(env)
        raise SystemExit(90) from exc


if __name__ == "__main__":
    main()
