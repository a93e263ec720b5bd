"""Decoder: generic YAML/JSON tree -> typed document Root.

Collections may be written as lists (declaration order kept) or as maps
keyed by id (normalized to lexicographic key order).  Any shape problem is
raised internally as ``TypeError``/``ValueError`` and surfaces from
:func:`decode` as exactly one :class:`DecodeError`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import yaml

from cwlkit.contracts.common import DecodeError
from cwlkit.contracts.document import LinkMerge, Root, RunTarget, ScatterMethod, Step, StepInput, StepOutput
from cwlkit.contracts.params import Argument, DefaultValue, InputParameter, OutputParameter, SecondaryFile
from cwlkit.contracts.requirements import (
    DockerRequirement,
    EnvDef,
    EnvVarRequirement,
    ExpressionLibEntry,
    ExtensionRequirement,
    InitialWorkDirRequirement,
    InlineJavascriptRequirement,
    MultipleInputFeatureRequirement,
    Requirement,
    ResourceRequirement,
    ScatterFeatureRequirement,
    SchemaDefRequirement,
    ShellCommandRequirement,
    SoftwarePackage,
    SoftwareRequirement,
    StepInputExpressionRequirement,
    SubworkflowFeatureRequirement,
    WorkDirEntry,
)
from cwlkit.contracts.types import (
    ArrayType,
    Binding,
    CwlType,
    EnumType,
    RecordField,
    RecordType,
    ReferenceType,
    parse_type_name,
)
from cwlkit.io.fileops import read_text_safe

ROOT_CLASSES = ("CommandLineTool", "Workflow", "ExpressionTool")
SCHEMA_KINDS = {"array": "items", "record": "fields", "enum": "symbols"}


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def decode(tree: Any) -> Root:
    """Decode a parsed document tree into a Root."""
    if not isinstance(tree, dict):
        raise DecodeError(
            f"Document must be a mapping, got {type(tree).__name__}",
            details={"path": "$"},
        )
    try:
        return _decode_root(tree)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"Cannot decode document: {e}") from e


def load_document(path: str | Path) -> Root:
    """Read, parse and decode a CWL file."""
    return decode(_load_yaml(path))


def load_parameters(path: str | Path) -> dict[str, Any]:
    """Read a parameter (job) file: a mapping of input id -> value."""
    data = _load_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DecodeError(f"{path}: parameters must be a mapping", details={"path": str(path)})
    return data


def load_types(path: str | Path) -> list[CwlType]:
    """Decode a ``$import``-ed schema file (one type or a list of types)."""
    data = _load_yaml(path)
    try:
        return _types(data, str(path))
    except Exception as e:
        raise DecodeError(f"Cannot decode types in {path}: {e}") from e


def _load_yaml(path: str | Path) -> Any:
    try:
        text = read_text_safe(path)
    except OSError as e:
        raise DecodeError(f"Cannot read {path}: {e}", details={"path": str(path)}) from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DecodeError(f"Cannot parse {path}: {e}", details={"path": str(path)}) from e


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------
def _where(parent: str, key: Any) -> str:
    return f"{parent}.{key}" if parent else str(key)


def _mapping(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{where}: expected a list, got {type(value).__name__}")
    return value


def _str(value: Any, where: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(f"{where}: expected a string, got {type(value).__name__}")
    return str(value)


def _str_list(value: Any, where: str) -> list[str]:
    """Accept a single string or a list of strings."""
    if value is None:
        return []
    if isinstance(value, list):
        return [_str(v, f"{where}[{i}]") or "" for i, v in enumerate(value)]
    return [_str(value, where) or ""]


def _int(value: Any, where: str, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise TypeError(f"{where}: expected an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.lstrip("-").isdigit():
        return int(value)
    raise TypeError(f"{where}: expected an integer, got {value!r}")


def _bool(value: Any, where: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise TypeError(f"{where}: expected a boolean, got {value!r}")
    return value


def _doc(value: Any, where: str) -> str | None:
    if isinstance(value, list):
        return "\n".join(_str_list(value, where))
    return _str(value, where)


def _entries(value: Any, where: str, key_field: str = "id") -> list[tuple[str | None, Any]]:
    """Normalize list-form and map-form collections to (key, definition) pairs."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [(str(k), value[k]) for k in sorted(value, key=str)]
    if isinstance(value, list):
        pairs: list[tuple[str | None, Any]] = []
        for i, item in enumerate(value):
            if isinstance(item, dict):
                pairs.append((_str(item.get(key_field), f"{where}[{i}].{key_field}"), item))
            elif isinstance(item, str):
                pairs.append((item, None))
            else:
                raise TypeError(f"{where}[{i}]: expected a mapping or string")
        return pairs
    raise TypeError(f"{where}: expected a list or mapping, got {type(value).__name__}")


def _local_id(value: str, scope: str | None) -> str:
    """Strip a leading ``#`` and the enclosing scope from a packed id."""
    if value.startswith("#"):
        value = value[1:]
    if scope and value.startswith(scope + "/"):
        value = value[len(scope) + 1:]
    return value


# ---------------------------------------------------------------------------
# Types and bindings
# ---------------------------------------------------------------------------
def _binding(value: Any, where: str) -> Binding | None:
    if value is None:
        return None
    data = _mapping(value, where)
    return Binding(
        position=_int(data.get("position"), _where(where, "position")),
        prefix=_str(data.get("prefix"), _where(where, "prefix")),
        separate=_bool(data.get("separate"), _where(where, "separate"), True),
        item_separator=_str(data.get("itemSeparator"), _where(where, "itemSeparator")),
        shell_quote=_bool(data.get("shellQuote"), _where(where, "shellQuote"), True),
        value_from=_str(data.get("valueFrom"), _where(where, "valueFrom")),
        load_contents=_bool(data.get("loadContents"), _where(where, "loadContents"), False),
        glob=_str_list(data.get("glob"), _where(where, "glob")),
        output_eval=_str(data.get("outputEval"), _where(where, "outputEval")),
    )


def _schema_binding(data: dict, where: str) -> Binding | None:
    if "inputBinding" in data:
        return _binding(data["inputBinding"], _where(where, "inputBinding"))
    return _binding(data.get("outputBinding"), _where(where, "outputBinding"))


def _type(value: Any, where: str) -> CwlType:
    if value is None:
        return parse_type_name("null")
    if isinstance(value, str):
        return parse_type_name(value)
    if not isinstance(value, dict):
        raise TypeError(f"{where}: expected a type name or schema, got {type(value).__name__}")
    if "$import" in value:
        return ReferenceType(name=_str(value["$import"], _where(where, "$import")) or "")
    kind = value.get("type")
    name = _str(value.get("name"), _where(where, "name"))
    binding = _schema_binding(value, where)
    if kind == "array":
        return ArrayType(items=_types(value.get("items"), _where(where, "items")), name=name, binding=binding)
    if kind == "record":
        fields = [
            _field(key, item, _where(where, f"fields[{key}]"))
            for key, item in _entries(value.get("fields"), _where(where, "fields"), key_field="name")
        ]
        return RecordType(name=name, fields=fields, binding=binding)
    if kind == "enum":
        return EnumType(name=name, symbols=_str_list(value.get("symbols"), _where(where, "symbols")), binding=binding)
    if isinstance(kind, str):
        return parse_type_name(kind, binding)
    raise TypeError(f"{where}: unsupported type schema {kind!r}")


def _types(value: Any, where: str) -> list[CwlType]:
    if isinstance(value, list):
        if not value:
            raise TypeError(f"{where}: type union must not be empty")
        return [_type(v, f"{where}[{i}]") for i, v in enumerate(value)]
    if value is None:
        raise TypeError(f"{where}: missing type")
    return [_type(value, where)]


def _param_types(data: dict, where: str) -> list[CwlType]:
    """Read a parameter's ``type``; an inline schema may sit beside it."""
    kind = data.get("type")
    if isinstance(kind, str) and kind in SCHEMA_KINDS and SCHEMA_KINDS[kind] in data:
        return [_type({k: v for k, v in data.items() if k not in ("inputBinding", "outputBinding")}, where)]
    if kind is None:
        return [parse_type_name("Any")]
    return _types(kind, _where(where, "type"))


def _field(key: str | None, value: Any, where: str) -> RecordField:
    if value is None or isinstance(value, (str, list)):
        return RecordField(name=_field_name(key, where), types=_types(value, where))
    data = _mapping(value, where)
    return RecordField(
        name=_field_name(data.get("name", key), where),
        types=_param_types(data, where),
        binding=_schema_binding(data, where),
        label=_str(data.get("label"), _where(where, "label")),
        doc=_doc(data.get("doc"), _where(where, "doc")),
    )


def _field_name(name: Any, where: str) -> str:
    text = _str(name, where)
    if not text:
        raise TypeError(f"{where}: record field needs a name")
    return text.rsplit("/", 1)[-1].lstrip("#")


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------
def _secondary_files(value: Any, where: str) -> list[SecondaryFile]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    result = []
    for i, item in enumerate(items):
        if isinstance(item, dict):
            required = item.get("required")
            result.append(SecondaryFile(
                pattern=_str(item.get("pattern"), f"{where}[{i}].pattern") or "",
                required=required if isinstance(required, bool) else None,
            ))
        else:
            result.append(SecondaryFile(pattern=_str(item, f"{where}[{i}]") or ""))
    return result


def _default(data: dict) -> DefaultValue | None:
    value = data.get("default")
    if value is None:
        return None
    return DefaultValue.of(value)


def _format(value: Any, where: str) -> str | list[str] | None:
    if isinstance(value, list):
        return _str_list(value, where)
    return _str(value, where)


def _input(key: str | None, value: Any, where: str, scope: str | None) -> InputParameter:
    if not isinstance(value, dict):
        if key is None:
            raise TypeError(f"{where}: input needs an id")
        return InputParameter(id=_local_id(key, scope), types=_types(value, where))
    ident = _str(value.get("id"), _where(where, "id")) or key
    if not ident:
        raise TypeError(f"{where}: input needs an id")
    return InputParameter(
        id=_local_id(ident, scope),
        types=_param_types(value, where),
        binding=_binding(value.get("inputBinding"), _where(where, "inputBinding")),
        default=_default(value),
        secondary_files=_secondary_files(value.get("secondaryFiles"), _where(where, "secondaryFiles")),
        format=_format(value.get("format"), _where(where, "format")),
        label=_str(value.get("label"), _where(where, "label")),
        doc=_doc(value.get("doc"), _where(where, "doc")),
        streamable=_bool(value.get("streamable"), _where(where, "streamable"), False),
    )


def _output(key: str | None, value: Any, where: str, scope: str | None) -> OutputParameter:
    if not isinstance(value, dict):
        if key is None:
            raise TypeError(f"{where}: output needs an id")
        return OutputParameter(id=_local_id(key, scope), types=_types(value, where))
    ident = _str(value.get("id"), _where(where, "id")) or key
    if not ident:
        raise TypeError(f"{where}: output needs an id")
    link_merge = value.get("linkMerge")
    return OutputParameter(
        id=_local_id(ident, scope),
        types=_param_types(value, where),
        binding=_binding(value.get("outputBinding"), _where(where, "outputBinding")),
        output_source=[_local_id(s, scope) for s in _str_list(value.get("outputSource"), _where(where, "outputSource"))],
        link_merge=LinkMerge(link_merge).value if link_merge is not None else None,
        secondary_files=_secondary_files(value.get("secondaryFiles"), _where(where, "secondaryFiles")),
        format=_format(value.get("format"), _where(where, "format")),
        label=_str(value.get("label"), _where(where, "label")),
        doc=_doc(value.get("doc"), _where(where, "doc")),
    )


def _argument(value: Any, where: str) -> Argument:
    if isinstance(value, dict):
        return Argument(binding=_binding(value, where))
    return Argument(value=_str(value, where))


# ---------------------------------------------------------------------------
# Requirements and hints
# ---------------------------------------------------------------------------
def _expression_lib(data: dict, where: str) -> InlineJavascriptRequirement:
    entries = []
    for i, item in enumerate(_list(data.get("expressionLib"), _where(where, "expressionLib"))):
        if isinstance(item, dict) and "$include" in item:
            entries.append(ExpressionLibEntry(kind="$include", value=_str(item["$include"], f"{where}[{i}]") or ""))
        else:
            entries.append(ExpressionLibEntry(kind="$execute", value=_str(item, f"{where}[{i}]") or ""))
    return InlineJavascriptRequirement(expression_lib=entries)


def _schema_def(data: dict, where: str) -> SchemaDefRequirement:
    types = [_type(t, f"{where}.types[{i}]") for i, t in enumerate(_list(data.get("types"), _where(where, "types")))]
    return SchemaDefRequirement(types=types)


def _docker(data: dict, where: str) -> DockerRequirement:
    return DockerRequirement(
        docker_pull=_str(data.get("dockerPull"), _where(where, "dockerPull")),
        docker_load=_str(data.get("dockerLoad"), _where(where, "dockerLoad")),
        docker_file=_str(data.get("dockerFile"), _where(where, "dockerFile")),
        docker_import=_str(data.get("dockerImport"), _where(where, "dockerImport")),
        docker_image_id=_str(data.get("dockerImageId"), _where(where, "dockerImageId")),
        docker_output_directory=_str(data.get("dockerOutputDirectory"), _where(where, "dockerOutputDirectory")),
    )


def _software(data: dict, where: str) -> SoftwareRequirement:
    packages = []
    for key, item in _entries(data.get("packages"), _where(where, "packages"), key_field="package"):
        if isinstance(item, dict):
            packages.append(SoftwarePackage(
                package=_str(item.get("package"), _where(where, "package")) or key or "",
                version=_str_list(item.get("version"), _where(where, "version")),
                specs=_str_list(item.get("specs"), _where(where, "specs")),
            ))
        else:
            # map form: {name: [versions]} or {name: version}
            packages.append(SoftwarePackage(package=key or "", version=_str_list(item, _where(where, key))))
    return SoftwareRequirement(packages=packages)


def _work_dir(data: dict, where: str) -> InitialWorkDirRequirement:
    listing = data.get("listing")
    if isinstance(listing, str):
        return InitialWorkDirRequirement(listing=[WorkDirEntry(location=listing)])
    entries = []
    for i, item in enumerate(_list(listing, _where(where, "listing"))):
        item_where = f"{where}.listing[{i}]"
        if isinstance(item, str):
            entries.append(WorkDirEntry(location=item))
        elif isinstance(item, dict) and item.get("class") in ("File", "Directory"):
            entries.append(WorkDirEntry(location=_str(item.get("location") or item.get("path"), item_where)))
        elif isinstance(item, dict):
            entry = item.get("entry")
            if entry is not None and not isinstance(entry, str):
                raise TypeError(f"{item_where}.entry: expected a string or expression")
            entries.append(WorkDirEntry(
                entry=entry,
                entryname=_str(item.get("entryname"), _where(item_where, "entryname")),
                writable=_bool(item.get("writable"), _where(item_where, "writable"), False),
            ))
        else:
            raise TypeError(f"{item_where}: expected a string or mapping")
    return InitialWorkDirRequirement(listing=entries)


def _env_var(data: dict, where: str) -> EnvVarRequirement:
    defs = []
    env = data.get("envDef")
    if isinstance(env, dict):
        for name in sorted(env, key=str):
            value = env[name]
            if isinstance(value, dict):
                value = value.get("envValue")
            defs.append(EnvDef(name=str(name), value=_str(value, _where(where, name)) or ""))
    else:
        for i, item in enumerate(_list(env, _where(where, "envDef"))):
            item = _mapping(item, f"{where}.envDef[{i}]")
            defs.append(EnvDef(
                name=_str(item.get("envName"), f"{where}.envDef[{i}].envName") or "",
                value=_str(item.get("envValue"), f"{where}.envDef[{i}].envValue") or "",
            ))
    return EnvVarRequirement(env_def=defs)


def _resource(data: dict, where: str) -> ResourceRequirement:
    def amount(key: str) -> int | float | str | None:
        value = data.get(key)
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float, str)):
            return value
        raise TypeError(f"{where}.{key}: expected a number or expression")

    return ResourceRequirement(
        cores_min=amount("coresMin"),
        cores_max=amount("coresMax"),
        ram_min=amount("ramMin"),
        ram_max=amount("ramMax"),
        tmpdir_min=amount("tmpdirMin"),
        tmpdir_max=amount("tmpdirMax"),
        outdir_min=amount("outdirMin"),
        outdir_max=amount("outdirMax"),
    )


_REQUIREMENT_DECODERS: dict[str, Callable[[dict, str], Requirement]] = {
    "InlineJavascriptRequirement": _expression_lib,
    "SchemaDefRequirement": _schema_def,
    "DockerRequirement": _docker,
    "SoftwareRequirement": _software,
    "InitialWorkDirRequirement": _work_dir,
    "EnvVarRequirement": _env_var,
    "ShellCommandRequirement": lambda data, where: ShellCommandRequirement(),
    "ResourceRequirement": _resource,
    "ScatterFeatureRequirement": lambda data, where: ScatterFeatureRequirement(),
    "MultipleInputFeatureRequirement": lambda data, where: MultipleInputFeatureRequirement(),
    "SubworkflowFeatureRequirement": lambda data, where: SubworkflowFeatureRequirement(),
    "StepInputExpressionRequirement": lambda data, where: StepInputExpressionRequirement(),
}


def _requirement(cls: str | None, data: dict, where: str) -> Requirement:
    if cls is None:
        if "$import" in data:
            return ExtensionRequirement(fields={"$import": data["$import"]})
        raise TypeError(f"{where}: requirement needs a 'class'")
    decoder = _REQUIREMENT_DECODERS.get(cls)
    if decoder is None:
        return ExtensionRequirement(class_=cls, fields={k: v for k, v in data.items() if k != "class"})
    return decoder(data, where)


def _requirements(value: Any, where: str) -> list[Requirement]:
    result = []
    for key, item in _entries(value, where, key_field="class"):
        item_where = _where(where, key)
        if item is None:
            if isinstance(value, list):
                raise TypeError(f"{item_where}: expected a mapping")
            item = {}
        result.append(_requirement(key, _mapping(item, item_where), item_where))
    return result


# ---------------------------------------------------------------------------
# Steps and roots
# ---------------------------------------------------------------------------
def _step_input(key: str | None, value: Any, where: str, scope: str | None, step_scope: str) -> StepInput:
    if not isinstance(value, dict):
        if key is None:
            raise TypeError(f"{where}: step input needs an id")
        return StepInput(
            id=_local_id(key, step_scope),
            source=[_local_id(s, scope) for s in _str_list(value, where)],
        )
    ident = _str(value.get("id"), _where(where, "id")) or key
    if not ident:
        raise TypeError(f"{where}: step input needs an id")
    link_merge = value.get("linkMerge")
    return StepInput(
        id=_local_id(ident, step_scope),
        source=[_local_id(s, scope) for s in _str_list(value.get("source"), _where(where, "source"))],
        link_merge=LinkMerge(link_merge) if link_merge is not None else None,
        default=_default(value),
        value_from=_str(value.get("valueFrom"), _where(where, "valueFrom")),
    )


def _step_outputs(value: Any, where: str, step_scope: str) -> list[StepOutput]:
    outputs = []
    for i, item in enumerate(_list(value, where)):
        if isinstance(item, dict):
            ident = _str(item.get("id"), f"{where}[{i}].id")
        else:
            ident = _str(item, f"{where}[{i}]")
        if not ident:
            raise TypeError(f"{where}[{i}]: step output needs an id")
        outputs.append(StepOutput(id=_local_id(ident, step_scope)))
    return outputs


def _step(key: str | None, value: Any, where: str, scope: str | None, shared: dict[str, Any]) -> Step:
    data = _mapping(value, where)
    ident = _str(data.get("id"), _where(where, "id")) or key
    if not ident:
        raise TypeError(f"{where}: step needs an id")
    ident = _local_id(ident, scope)
    step_scope = f"{scope}/{ident}" if scope else ident

    run = data.get("run")
    if isinstance(run, str):
        target = RunTarget(reference=run)
    elif isinstance(run, dict):
        target = RunTarget(document=_decode_root(run, where=_where(where, "run"), **shared))
    else:
        raise TypeError(f"{where}.run: expected a reference string or an inline document")

    method = data.get("scatterMethod")
    return Step(
        id=ident,
        inputs=[
            _step_input(k, v, _where(where, f"in[{k}]"), scope, step_scope)
            for k, v in _entries(data.get("in"), _where(where, "in"))
        ],
        outputs=_step_outputs(data.get("out"), _where(where, "out"), step_scope),
        run=target,
        scatter=[_local_id(s, step_scope) for s in _str_list(data.get("scatter"), _where(where, "scatter"))],
        scatter_method=ScatterMethod(method) if method is not None else None,
        requirements=_requirements(data.get("requirements"), _where(where, "requirements")),
        hints=_requirements(data.get("hints"), _where(where, "hints")),
        label=_str(data.get("label"), _where(where, "label")),
        doc=_doc(data.get("doc"), _where(where, "doc")),
    )


def _decode_root(
    data: dict,
    *,
    where: str = "",
    namespaces: dict[str, str] | None = None,
    schemas: list[str] | None = None,
) -> Root:
    if "$namespaces" in data:
        namespaces = {str(k): str(v) for k, v in _mapping(data["$namespaces"], _where(where, "$namespaces")).items()}
    if "$schemas" in data:
        schemas = _str_list(data["$schemas"], _where(where, "$schemas"))
    shared = {"namespaces": namespaces or {}, "schemas": schemas or []}

    graph = [
        _decode_root(_mapping(entry, _where(where, f"$graph[{i}]")), where=_where(where, f"$graph[{i}]"), **shared)
        for i, entry in enumerate(_list(data.get("$graph"), _where(where, "$graph")))
    ]

    cls = data.get("class")
    if cls is not None and cls not in ROOT_CLASSES:
        raise ValueError(f"{_where(where, 'class')}: unsupported document class {cls!r}")

    raw_id = _str(data.get("id"), _where(where, "id"))
    ident = _local_id(raw_id, None) if raw_id else None
    scope = ident

    return Root(
        id=ident,
        class_=cls,
        cwl_version=_str(data.get("cwlVersion"), _where(where, "cwlVersion")),
        label=_str(data.get("label"), _where(where, "label")),
        doc=_doc(data.get("doc"), _where(where, "doc")),
        namespaces=shared["namespaces"],
        schemas=shared["schemas"],
        base_command=_str_list(data.get("baseCommand"), _where(where, "baseCommand")),
        arguments=[
            _argument(a, f"{_where(where, 'arguments')}[{i}]")
            for i, a in enumerate(_list(data.get("arguments"), _where(where, "arguments")))
        ],
        stdin=_str(data.get("stdin"), _where(where, "stdin")),
        stdout=_str(data.get("stdout"), _where(where, "stdout")),
        stderr=_str(data.get("stderr"), _where(where, "stderr")),
        inputs=[
            _input(k, v, _where(where, f"inputs[{k}]"), scope)
            for k, v in _entries(data.get("inputs"), _where(where, "inputs"))
        ],
        outputs=[
            _output(k, v, _where(where, f"outputs[{k}]"), scope)
            for k, v in _entries(data.get("outputs"), _where(where, "outputs"))
        ],
        requirements=_requirements(data.get("requirements"), _where(where, "requirements")),
        hints=_requirements(data.get("hints"), _where(where, "hints")),
        steps=[
            _step(k, v, _where(where, f"steps[{k}]"), scope, shared)
            for k, v in _entries(data.get("steps"), _where(where, "steps"))
        ],
        expression=_str(data.get("expression"), _where(where, "expression")),
        success_codes=[_int(c, _where(where, "successCodes")) for c in _list(data.get("successCodes"), "successCodes")],
        temporary_fail_codes=[
            _int(c, _where(where, "temporaryFailCodes")) for c in _list(data.get("temporaryFailCodes"), "temporaryFailCodes")
        ],
        permanent_fail_codes=[
            _int(c, _where(where, "permanentFailCodes")) for c in _list(data.get("permanentFailCodes"), "permanentFailCodes")
        ],
        graph=graph,
    )
