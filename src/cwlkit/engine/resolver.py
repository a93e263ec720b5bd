"""Resolver: a decoded Root plus a parameter set -> concrete Command records.

A CommandLineTool yields one Command, an ExpressionTool one Command that
carries its expression, and a Workflow the commands of every step (one
per scatter instance), each namespaced under its step id and listing the
commands it depends on.  Values another step has not produced yet are
bound as :class:`OutputRef` placeholders; commands that render one are
marked ``deferred``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable

import portalocker

from cwlkit.contracts.commands import Command, ResolveConfig
from cwlkit.contracts.common import (
    EntryNotFoundError,
    FileOperationError,
    MissingInputError,
    PendingValueError,
    ResolveError,
)
from cwlkit.contracts.document import LinkMerge, Root, Step, StepInput
from cwlkit.contracts.params import InputParameter
from cwlkit.contracts.requirements import (
    EnvVarRequirement,
    InitialWorkDirRequirement,
    Requirement,
    ResourceRequirement,
    SchemaDefRequirement,
    ShellCommandRequirement,
    WorkDirEntry,
)
from cwlkit.contracts.types import (
    ArrayType,
    CwlType,
    ReferenceType,
    ScalarType,
    expand_literal,
    is_optional,
    non_null,
    type_name,
)
from cwlkit.engine.binding import Flattener, Token
from cwlkit.engine.context import BindingContext, OutputRef, contains_output_ref
from cwlkit.engine.decoder import load_document, load_parameters, load_types
from cwlkit.engine.expressions import (
    EvaluatorFactory,
    ExpressionCapabilities,
    default_evaluator_factory,
    evaluate,
)
from cwlkit.engine.files import FILE_CLASSES, file_object, is_file_object, secondary_files_for
from cwlkit.engine.requirements import docker_image, effective, merge_requirements
from cwlkit.engine.scatter import ScatterInstance, expand_scatter
from cwlkit.io.fileops import OutputDirLock, atomic_write, copy_path, read_head
from cwlkit.observe.events import EventEmitter

RunLoader = Callable[[str, str], "tuple[Root, str]"]
InputFileCallback = Callable[[str, str], str]

_DERIVED_FILE_KEYS = ("path", "basename", "dirname", "nameroot", "nameext", "listing")

_RESOURCE_KEYS = {
    "cores_min": "coresMin",
    "cores_max": "coresMax",
    "ram_min": "ramMin",
    "ram_max": "ramMax",
    "tmpdir_min": "tmpdirMin",
    "tmpdir_max": "tmpdirMax",
    "outdir_min": "outdirMin",
    "outdir_max": "outdirMax",
}


def default_run_loader(reference: str, document_dir: str) -> tuple[Root, str]:
    """Load a step's ``run`` file relative to the referring document."""
    path = Path(reference)
    if not path.is_absolute():
        path = Path(document_dir) / path
    return load_document(path), str(path.resolve().parent)


def default_input_file_callback(step: str, path: str) -> str:
    """Leave input files where they are."""
    return path


def select_entry(document: Root, entry: str | None = None) -> Root:
    """Pick the Root to resolve from a (possibly ``$graph``) document."""
    try:
        return document.entry(entry)
    except KeyError as e:
        raise EntryNotFoundError(
            f"No $graph entry '{e.args[0]}'",
            details={"entry": e.args[0], "graph": [g.id for g in document.graph]},
        ) from e


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _output_refs(value: Any) -> list[OutputRef]:
    if isinstance(value, OutputRef):
        return [value]
    if isinstance(value, list):
        return [ref for v in value for ref in _output_refs(v)]
    if isinstance(value, dict):
        return [ref for v in value.values() for ref in _output_refs(v)]
    return []


def _has_type(types: list[CwlType], name: str) -> bool:
    return any(isinstance(t, ScalarType) and t.name == name for t in types)


def _file_kind(types: list[CwlType]) -> str | None:
    """``File``/``Directory`` when the union (or its array items) declares one."""
    for t in non_null(types):
        t = expand_literal(t)
        if isinstance(t, ScalarType) and t.name in FILE_CLASSES:
            return t.name
        if isinstance(t, ArrayType):
            found = _file_kind(t.items)
            if found:
                return found
    return None


class Resolver:
    """Resolves one Root against parameter sets.

    Requirements and hints inherited from enclosing scopes are merged into
    the Root's own at construction.  Every call to :meth:`resolve` builds a
    fresh :class:`BindingContext`, so one Resolver can serve many scatter
    instances.
    """

    def __init__(
        self,
        root: Root,
        config: ResolveConfig | None = None,
        *,
        document_dir: str | None = None,
        evaluator_factory: EvaluatorFactory = default_evaluator_factory,
        run_loader: RunLoader = default_run_loader,
        input_file_callback: InputFileCallback = default_input_file_callback,
        emitter: EventEmitter | None = None,
        parent_requirements: list[Requirement] | None = None,
        parent_hints: list[Requirement] | None = None,
        graph: Root | None = None,
        name: str = "",
    ) -> None:
        self.root = root
        self.config = config or ResolveConfig()
        self.document_dir = document_dir
        self.evaluator_factory = evaluator_factory
        self.run_loader = run_loader
        self.input_file_callback = input_file_callback
        self.emitter = emitter or EventEmitter()
        self.parent_requirements = list(parent_requirements or [])
        self.parent_hints = list(parent_hints or [])
        self.graph = graph if graph is not None else (root if root.graph else None)
        self.name = name
        self.requirements = merge_requirements(self.parent_requirements, root.requirements)
        self.hints = merge_requirements(self.parent_hints, root.hints)

    def _derive(self, root: Root, **overrides: Any) -> "Resolver":
        settings: dict[str, Any] = {
            "config": self.config,
            "document_dir": self.document_dir,
            "evaluator_factory": self.evaluator_factory,
            "run_loader": self.run_loader,
            "input_file_callback": self.input_file_callback,
            "emitter": self.emitter,
            "parent_requirements": self.parent_requirements,
            "parent_hints": self.parent_hints,
            "graph": self.graph,
            "name": self.name,
        }
        settings.update(overrides)
        config = settings.pop("config")
        return Resolver(root, config, **settings)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def resolve(
        self,
        params: dict[str, Any] | None = None,
        *,
        params_dir: str | None = None,
        entry: str | None = None,
    ) -> list[Command]:
        """Resolve the Root (or the selected ``$graph`` entry) into commands."""
        if self.root.graph:
            target = select_entry(self.root, entry)
            return self._derive(target, graph=self.root).resolve(params, params_dir=params_dir)

        params = params or {}
        self.emitter.emit("resolve.start", {
            "name": self.name or self.root.id or "",
            "class": self.root.class_,
            "inputs": sorted(params),
        })
        context = BindingContext(self._runtime())
        capabilities = ExpressionCapabilities.from_requirements(
            self.requirements + self.hints, base_dir=self.document_dir
        )
        flattener = Flattener(self.evaluator_factory(capabilities), context, self._schema())
        self._apply_resources(flattener)
        self._bind_inputs(flattener, params, params_dir)

        if self.root.is_workflow:
            commands = self._resolve_workflow(flattener, params_dir)
        elif self.root.is_expression_tool:
            commands = [self._expression_command(flattener)]
        else:
            commands = [self._tool_command(flattener)]
        for command in commands:
            self.emitter.emit("resolve.command", {"id": command.id, "deferred": command.deferred})
        return commands

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------
    def _outdir(self) -> str:
        return self.config.output_dir or os.getcwd()

    def _runtime(self) -> dict[str, Any]:
        runtime = self.config.runtime()
        runtime["outdir"] = self._outdir()
        return runtime

    def _apply_resources(self, flattener: Flattener) -> None:
        resources = effective(self.requirements, self.hints, ResourceRequirement)
        if resources is None:
            return
        runtime = flattener.context.runtime
        for field, key in (("cores_min", "cores"), ("ram_min", "ram"),
                           ("outdir_min", "outdirSize"), ("tmpdir_min", "tmpdirSize")):
            value = flattener.evaluate(getattr(resources, field))
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                runtime[key] = max(runtime[key], int(value))

    def _schema(self) -> dict[str, CwlType]:
        schema: dict[str, CwlType] = {}
        for source in (self.hints, self.requirements):
            for req in source:
                if not isinstance(req, SchemaDefRequirement):
                    continue
                for t in req.types:
                    for declared in self._schema_types(t):
                        if getattr(declared, "name", None):
                            schema[type_name(declared.name)] = declared
        return schema

    def _schema_types(self, t: CwlType) -> list[CwlType]:
        if isinstance(t, ReferenceType) and not t.name.startswith("#"):
            path = t.name.split("#", 1)[0]
            base = Path(self.document_dir) if self.document_dir else Path.cwd()
            return load_types(base / path)
        return [t]

    def _bind_inputs(self, flattener: Flattener, params: dict[str, Any], params_dir: str | None) -> None:
        for param in self.root.inputs:
            value = params.get(param.id)
            base_dir = params_dir
            if value is None and param.default is not None:
                value = param.default.materialize()
                base_dir = self.document_dir
            if value is None and param.binding is None and not is_optional(param.types):
                raise MissingInputError(param.id)
            flattener.context.bind(param.id, self._prepare(value, base_dir, param, flattener))

    # ------------------------------------------------------------------
    # Input files
    # ------------------------------------------------------------------
    def _prepare(
        self,
        value: Any,
        base_dir: str | None,
        param: InputParameter,
        flattener: Flattener,
        kind: str | None = None,
    ) -> Any:
        kind = kind or _file_kind(param.types)
        if isinstance(value, list):
            return [self._prepare(v, base_dir, param, flattener, kind) for v in value]
        if isinstance(value, dict) and "class" not in value and kind and ("location" in value or "path" in value):
            value = {"class": kind, **value}
        if is_file_object(value):
            return self._prepare_file(value, base_dir, param, flattener)
        if isinstance(value, dict):
            return {k: self._prepare(v, base_dir, param, flattener) for k, v in value.items()}
        return value

    def _prepare_file(
        self,
        value: dict[str, Any],
        base_dir: str | None,
        param: InputParameter,
        flattener: Flattener,
    ) -> dict[str, Any]:
        obj = self._stage(file_object(value, base_dir))
        if obj["class"] != "File":
            return obj
        if param.binding is not None and param.binding.load_contents:
            try:
                obj["contents"] = read_head(obj["path"])
            except OSError as e:
                raise FileOperationError(
                    f"Cannot load contents of {obj['path']}: {e}",
                    details={"input": param.id, "path": obj["path"]},
                ) from e
        if param.secondary_files:
            found = secondary_files_for(obj, param.secondary_files, flattener.evaluate)
            obj["secondaryFiles"] = [self._stage(f) for f in found]
        return obj

    def _stage(self, obj: dict[str, Any]) -> dict[str, Any]:
        staged = self.input_file_callback(self.name, obj["path"])
        if staged == obj["path"]:
            return obj
        kept = {k: v for k, v in obj.items() if k not in _DERIVED_FILE_KEYS}
        kept["path"] = staged
        return file_object(kept, list_directory=obj["class"] == "Directory")

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------
    def _tool_command(self, flattener: Flattener) -> Command:
        arguments = flattener.arguments(self.root.arguments)
        priors, inputs = flattener.inputs(self.root.inputs)
        tokens = [Token(t) for t in self.root.base_command] + priors + arguments + inputs
        if not tokens:
            raise ResolveError(
                "Command line is empty: no baseCommand, arguments or bound inputs",
                details={"id": self.root.id},
            )

        env = self._environment(flattener)
        self._stage_work_dir(flattener)
        command = Command(
            id=self.root.id or "",
            cmd=[t.text for t in tokens],
            via_shell=effective(self.requirements, self.hints, ShellCommandRequirement) is not None,
            shell_quote=all(t.quote for t in tokens),
            no_quote=[i for i, t in enumerate(tokens) if not t.quote],
            cwd=self._outdir(),
            tmp_prefix=self.config.tmp_dir_prefix,
            stdin=self._stream(flattener, self.root.stdin),
            stdout=self._stream(flattener, self.root.stdout) or self._capture_name("stdout"),
            stderr=self._stream(flattener, self.root.stderr) or self._capture_name("stderr"),
            env=env,
            inputs=flattener.context.values,
            outputs=list(self.root.outputs),
            docker_image=docker_image(self.requirements, self.hints),
            resources=self._resources(flattener),
            success_codes=list(self.root.success_codes),
        )
        command.deferred = flattener.deferred
        return command

    def _stream(self, flattener: Flattener, expression: str | None) -> str | None:
        if expression is None:
            return None
        try:
            value = flattener.evaluate(expression)
        except PendingValueError:
            flattener.deferred = True
            return expression
        if is_file_object(value):
            return value.get("path")
        return None if value is None else str(value)

    def _capture_name(self, stream: str) -> str | None:
        for output in self.root.outputs:
            if _has_type(output.types, stream):
                return f"{output.id}.{stream}"
        return None

    def _resources(self, flattener: Flattener) -> dict[str, Any]:
        resources = effective(self.requirements, self.hints, ResourceRequirement)
        if resources is None:
            return {}
        result = {}
        for field, key in _RESOURCE_KEYS.items():
            value = getattr(resources, field)
            if value is not None:
                result[key] = flattener.evaluate(value)
        return result

    def _environment(self, flattener: Flattener) -> dict[str, str]:
        runtime = flattener.context.runtime
        env = {"HOME": str(runtime["outdir"]), "TMPDIR": str(runtime["tmpdir"])}
        for name in self.config.env:
            if name in os.environ:
                env[name] = os.environ[name]
        for source in (self.hints, self.requirements):
            for req in source:
                if not isinstance(req, EnvVarRequirement):
                    continue
                for env_def in req.env_def:
                    try:
                        value = flattener.evaluate(env_def.value)
                    except PendingValueError:
                        flattener.deferred = True
                        value = env_def.value
                    env[env_def.name] = value if isinstance(value, str) else json.dumps(value)
        return env

    def _stage_work_dir(self, flattener: Flattener) -> None:
        work_dir = effective(self.requirements, self.hints, InitialWorkDirRequirement)
        if work_dir is None or not work_dir.listing:
            return
        outdir = Path(self._outdir())
        try:
            with OutputDirLock(outdir):
                for entry in work_dir.listing:
                    self._stage_entry(flattener, outdir, entry)
        except portalocker.LockException as e:
            raise FileOperationError(
                f"Output directory {outdir} is locked by another resolution",
                details={"path": str(outdir)},
            ) from e
        except OSError as e:
            raise FileOperationError(f"Cannot stage into {outdir}: {e}", details={"path": str(outdir)}) from e

    def _stage_entry(self, flattener: Flattener, outdir: Path, entry: WorkDirEntry) -> None:
        if entry.entry is None and entry.location is None:
            raise ResolveError(
                "InitialWorkDir entry needs an entry or a location",
                details={"entryname": entry.entryname},
            )
        try:
            if entry.entry is None:
                content = flattener.evaluate(entry.location)
                name = None
            else:
                content = flattener.evaluate(entry.entry)
                name = flattener.evaluate(entry.entryname) if entry.entryname else None
        except PendingValueError:
            flattener.deferred = True
            return

        if isinstance(content, str) and entry.entry is None:
            content = file_object(content, self.document_dir)
        items = content if isinstance(content, list) and all(is_file_object(c) for c in content) else [content]
        for item in items:
            if item is None:
                continue
            if is_file_object(item):
                source = file_object(item, self.document_dir)
                target = outdir / (name if name and len(items) == 1 else source["basename"])
                copy_path(source["path"], target)
            else:
                if not name:
                    raise ResolveError(
                        "InitialWorkDir entry with literal content needs an entryname",
                        details={"entry": entry.entry},
                    )
                text = item if isinstance(item, str) else json.dumps(item, indent=2)
                target = outdir / str(name)
                atomic_write(target, text.encode("utf-8"))
            self.emitter.emit("stage.write", {"path": str(target)})

    def _expression_command(self, flattener: Flattener) -> Command:
        values = flattener.context.values
        return Command(
            id=self.root.id or "",
            cwd=self._outdir(),
            tmp_prefix=self.config.tmp_dir_prefix,
            inputs=values,
            outputs=list(self.root.outputs),
            expression=self.root.expression,
            deferred=contains_output_ref(values),
        )

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------
    def _step_order(self) -> list[Step]:
        """Declaration order, except that a step follows the steps it sources."""
        steps = self.root.steps
        ids = {s.id for s in steps}
        needs = {
            s.id: {
                src.split("/", 1)[0]
                for si in s.inputs
                for src in si.source
                if "/" in src and src.split("/", 1)[0] in ids
            }
            for s in steps
        }
        ordered: list[Step] = []
        done: set[str] = set()
        while len(ordered) < len(steps):
            ready = next((s for s in steps if s.id not in done and needs[s.id] <= done), None)
            if ready is None:
                raise ResolveError("Workflow steps form a cycle", details={"steps": sorted(ids - done)})
            ordered.append(ready)
            done.add(ready.id)
        return ordered

    def _resolve_workflow(self, flattener: Flattener, params_dir: str | None) -> list[Command]:
        commands: list[Command] = []
        produced: dict[str, list[str]] = {}
        for step in self._step_order():
            target, target_dir, graph = self._load_run(step)
            raw = self._step_params(step, flattener)
            dependencies = _unique([
                command_id
                for ref in _output_refs(raw)
                for command_id in produced.get(ref.step, [])
            ])

            template = any(isinstance(raw.get(name), OutputRef) for name in step.scatter)
            if template:
                instances = [ScatterInstance(raw, [])]
            else:
                instances = expand_scatter(raw, step.scatter, step.scatter_method)
            if step.scatter:
                self.emitter.emit("resolve.scatter", {
                    "step": step.id,
                    "variables": step.scatter,
                    "instances": len(instances),
                    "deferred": template,
                })

            produced[step.id] = []
            for instance in instances:
                instance = instance._replace(params=self._value_from(step, instance.params, flattener))
                sub = self._resolve_instance(step, instance, target, target_dir, graph, params_dir)
                for command in sub:
                    command.dependencies = _unique(command.dependencies + dependencies)
                    if template:
                        command.deferred = True
                        command.scatter = list(step.scatter)
                        command.scatter_method = step.scatter_method.value if step.scatter_method else "dotproduct"
                    produced[step.id].append(command.id)
                commands.extend(sub)
        return commands

    def _resolve_instance(
        self,
        step: Step,
        instance: ScatterInstance,
        target: Root,
        target_dir: str | None,
        graph: Root | None,
        params_dir: str | None,
    ) -> list[Command]:
        unique = step.id
        if step.scatter and instance.index:
            unique += "[" + ",".join(str(i) for i in instance.index) + "]"
        name = f"{self.name}.{unique}" if self.name else unique
        child = Resolver(
            target,
            self.config.model_copy(update={"output_dir": os.path.join(self.config.tmp_out_dir_prefix, name)}),
            document_dir=target_dir,
            evaluator_factory=self.evaluator_factory,
            run_loader=self.run_loader,
            input_file_callback=self.input_file_callback,
            emitter=self.emitter,
            parent_requirements=merge_requirements(self.requirements, step.requirements),
            parent_hints=merge_requirements(self.hints, step.hints),
            graph=graph,
            name=name,
        )
        sub = child.resolve(instance.params, params_dir=params_dir)

        renamed = {command.id: (f"{unique}.{command.id}" if command.id else unique) for command in sub}
        for command in sub:
            command.id = renamed[command.id]
            command.dependencies = [renamed.get(d, d) for d in command.dependencies]
            command.scatter_index = list(instance.index) + command.scatter_index
        return sub

    def _load_run(self, step: Step) -> tuple[Root, str | None, Root | None]:
        if step.run.document is not None:
            return step.run.document, self.document_dir, self.graph
        reference = step.run.reference or ""
        path, _, fragment = reference.partition("#")
        if not path:
            found = self.graph.find_graph(fragment) if self.graph is not None else None
            if found is None:
                raise EntryNotFoundError(
                    f"Step '{step.id}' runs '{reference}', which is not in the $graph",
                    details={"step": step.id, "run": reference},
                )
            return found, self.document_dir, self.graph
        document, document_dir = self.run_loader(path, self.document_dir or os.getcwd())
        graph = document if document.graph else None
        return select_entry(document, fragment or None), document_dir, graph

    def _step_params(self, step: Step, flattener: Flattener) -> dict[str, Any]:
        """Source values (after linkMerge) or step defaults, before any valueFrom."""
        raw: dict[str, Any] = {}
        for step_input in step.inputs:
            value = self._source_value(step_input, flattener.context)
            if value is None and step_input.default is not None:
                value = self._default_files(step_input.default.materialize())
            raw[step_input.id] = value
        return raw

    def _value_from(self, step: Step, raw: dict[str, Any], flattener: Flattener) -> dict[str, Any]:
        """Apply step input valueFrom to one invocation's values.

        For a scattered step ``raw`` holds one instance, so ``self`` is the
        scattered element rather than the whole source array.
        """
        params = dict(raw)
        for step_input in step.inputs:
            if step_input.value_from is None:
                continue
            context = {"inputs": raw, "self": raw[step_input.id], "runtime": flattener.context.runtime}
            try:
                params[step_input.id] = evaluate(flattener.evaluator, step_input.value_from, context)
            except PendingValueError:
                refs = _output_refs(raw[step_input.id]) or _output_refs(raw)
                params[step_input.id] = refs[0] if refs else raw[step_input.id]
        return params

    def _default_files(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self._default_files(v) for v in value]
        if is_file_object(value):
            return file_object(value, self.document_dir)
        if isinstance(value, dict):
            return {k: self._default_files(v) for k, v in value.items()}
        return value

    def _source_value(self, step_input: StepInput, context: BindingContext) -> Any:
        values = [self._source(source, context) for source in step_input.source]
        if not values:
            return None
        if len(values) == 1 and step_input.link_merge is None:
            return values[0]
        if step_input.link_merge == LinkMerge.MERGE_FLATTENED:
            merged: list[Any] = []
            for value in values:
                if isinstance(value, list):
                    merged.extend(value)
                else:
                    merged.append(value)
            return merged
        return values

    def _source(self, source: str, context: BindingContext) -> Any:
        step_id, sep, output = source.partition("/")
        if sep and self.root.find_step(step_id) is not None:
            return OutputRef(step=step_id, output=output)
        if source in context:
            return context.get(source)
        raise ResolveError(
            f"Source '{source}' names neither a workflow input nor a step output",
            details={"source": source},
        )


def resolve_file(
    cwl_path: str | Path,
    params_path: str | Path | None = None,
    config: ResolveConfig | None = None,
    *,
    entry: str | None = None,
    **kwargs: Any,
) -> list[Command]:
    """Load a CWL file (``file.cwl#entry`` selects a graph entry) and resolve it."""
    path, _, fragment = str(cwl_path).partition("#")
    document = load_document(path)
    params: dict[str, Any] = {}
    params_dir = None
    if params_path is not None:
        params = load_parameters(params_path)
        params_dir = str(Path(params_path).resolve().parent)
    resolver = Resolver(document, config, document_dir=str(Path(path).resolve().parent), **kwargs)
    return resolver.resolve(params, params_dir=params_dir, entry=entry or fragment or None)
