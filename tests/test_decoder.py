"""Tests for decoding document trees into typed Roots."""

from __future__ import annotations

from pathlib import Path

import pytest

from cwlkit.contracts.common import DecodeError
from cwlkit.contracts.document import LinkMerge, ScatterMethod
from cwlkit.contracts.requirements import (
    DockerRequirement,
    EnvVarRequirement,
    ExtensionRequirement,
    InitialWorkDirRequirement,
    InlineJavascriptRequirement,
    ResourceRequirement,
    SoftwareRequirement,
)
from cwlkit.contracts.types import ArrayType, EnumType, RecordType, ReferenceType, ScalarType
from cwlkit.engine.decoder import decode, load_document, load_parameters, load_types


def test_decode_simple_tool(decode_yaml):
    root = decode_yaml("""
cwlVersion: v1.2
class: CommandLineTool
baseCommand: cat
inputs:
  file:
    type: File
    inputBinding: {position: 1}
outputs: []
""")
    assert root.class_ == "CommandLineTool"
    assert root.cwl_version == "v1.2"
    assert root.base_command == ["cat"]
    assert len(root.inputs) == 1
    param = root.inputs[0]
    assert param.id == "file"
    assert param.types == [ScalarType(name="File")]
    assert param.binding.position == 1
    assert param.binding.separate is True
    assert param.binding.shell_quote is True


def test_map_and_list_forms_agree(decode_yaml):
    as_map = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  b: {type: string, inputBinding: {position: 2}}
  a: {type: string, inputBinding: {position: 1}}
outputs: []
""")
    as_list = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  - id: a
    type: string
    inputBinding: {position: 1}
  - id: b
    type: string
    inputBinding: {position: 2}
outputs: []
""")
    # map form is normalized to lexicographic key order
    assert [p.id for p in as_map.inputs] == ["a", "b"]
    assert as_map.inputs == as_list.inputs


def test_list_form_keeps_declaration_order(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  - {id: zeta, type: string}
  - {id: alpha, type: string}
outputs: []
""")
    assert [p.id for p in root.inputs] == ["zeta", "alpha"]


def test_shorthand_types_stay_verbatim(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  files: File[]
  maybe: int?
  either: [null, string]
outputs: []
""")
    types = {p.id: p.types for p in root.inputs}
    assert types["files"] == [ScalarType(name="File[]")]
    assert types["maybe"] == [ScalarType(name="int?")]
    assert types["either"] == [ScalarType(name="null"), ScalarType(name="string")]


def test_inline_schemas(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  letters:
    type:
      type: array
      items: string
      inputBinding: {prefix: -B=, separate: false}
    inputBinding: {position: 2}
  mode:
    type:
      type: enum
      symbols: [fast, slow]
  pair:
    type:
      type: record
      fields:
        left: int
        right: {type: int, inputBinding: {prefix: -r}}
outputs: []
""")
    types = {p.id: p.types[0] for p in root.inputs}
    letters = types["letters"]
    assert isinstance(letters, ArrayType)
    assert letters.items == [ScalarType(name="string")]
    assert letters.binding.prefix == "-B="
    assert letters.binding.separate is False
    assert isinstance(types["mode"], EnumType)
    assert types["mode"].symbols == ["fast", "slow"]
    pair = types["pair"]
    assert isinstance(pair, RecordType)
    assert [f.name for f in pair.fields] == ["left", "right"]
    assert pair.fields[1].binding.prefix == "-r"


def test_schema_reference_type(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  opts: types.yml#Opts
outputs: []
""")
    assert root.inputs[0].types == [ReferenceType(name="types.yml#Opts")]


def test_arguments_literal_and_binding(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: sh
arguments:
  - -c
  - valueFrom: "echo foo 1>&2"
    shellQuote: false
    position: 2
inputs: []
outputs: []
""")
    literal, bound = root.arguments
    assert literal.value == "-c"
    assert literal.binding is None
    assert bound.binding.value_from == "echo foo 1>&2"
    assert bound.binding.shell_quote is False
    assert bound.binding.position == 2


def test_defaults_record_their_shape(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
inputs:
  n: {type: int, default: 3}
  words: {type: "string[]", default: [a, b]}
  ref: {type: File, default: {class: File, location: x.txt}}
outputs: []
""")
    defaults = {p.id: p.default for p in root.inputs}
    assert defaults["n"].shape == "scalar"
    assert defaults["words"].shape == "list"
    assert defaults["ref"].shape == "map"
    copy = defaults["words"].materialize()
    copy.append("c")
    assert defaults["words"].value == ["a", "b"]


def test_requirements_decode_to_typed_models(decode_yaml):
    root = decode_yaml("""
class: CommandLineTool
baseCommand: echo
requirements:
  InlineJavascriptRequirement:
    expressionLib:
      - "function f() { return 1; }"
      - $include: lib/util.js
  EnvVarRequirement:
    envDef:
      GREETING: hello
  InitialWorkDirRequirement:
    listing:
      - entryname: conf.ini
        entry: "x=1"
      - $(inputs.src)
  ResourceRequirement:
    coresMin: 2
    ramMin: 512
hints:
  - class: DockerRequirement
    dockerPull: alpine:3
  - class: SoftwareRequirement
    packages:
      samtools: ["1.9"]
  - class: acme:Custom
    knob: 7
inputs: []
outputs: []
""")
    by_type = {type(r): r for r in root.requirements}
    js = by_type[InlineJavascriptRequirement]
    assert [e.kind for e in js.expression_lib] == ["$execute", "$include"]
    env = by_type[EnvVarRequirement]
    assert env.env_def[0].name == "GREETING"
    assert env.env_def[0].value == "hello"
    iwd = by_type[InitialWorkDirRequirement]
    assert iwd.listing[0].entryname == "conf.ini"
    assert iwd.listing[1].location == "$(inputs.src)"
    resources = by_type[ResourceRequirement]
    assert resources.cores_min == 2
    assert resources.ram_min == 512

    docker, software, custom = root.hints
    assert isinstance(docker, DockerRequirement)
    assert docker.docker_pull == "alpine:3"
    assert isinstance(software, SoftwareRequirement)
    assert software.packages[0].package == "samtools"
    assert software.packages[0].version == ["1.9"]
    assert isinstance(custom, ExtensionRequirement)
    assert custom.class_ == "acme:Custom"
    assert custom.fields == {"knob": 7}


def test_workflow_steps(two_step_tree):
    root = decode(two_step_tree)
    assert root.is_workflow
    assert [s.id for s in root.steps] == ["step1", "step2"]
    step2 = root.steps[1]
    assert step2.inputs[0].id == "file"
    assert step2.inputs[0].source == ["step1/out"]
    assert step2.run.document is not None
    assert step2.run.document.base_command == ["cat"]


def test_step_scatter_and_link_merge(decode_yaml):
    root = decode_yaml("""
class: Workflow
inputs:
  a: string[]
  b: string[]
outputs: []
steps:
  s:
    run: tool.cwl
    scatter: [x, y]
    scatterMethod: nested_crossproduct
    in:
      x: a
      y:
        source: [a, b]
        linkMerge: merge_flattened
    out: []
""")
    step = root.steps[0]
    assert step.run.reference == "tool.cwl"
    assert step.scatter == ["x", "y"]
    assert step.scatter_method == ScatterMethod.NESTED_CROSSPRODUCT
    assert step.find_input("y").link_merge == LinkMerge.MERGE_FLATTENED
    assert step.find_input("y").source == ["a", "b"]


def test_packed_graph_ids_are_localized(documents_dir: Path):
    document = load_document(documents_dir / "packed.cwl")
    assert [g.id for g in document.graph] == ["wc", "main"]
    main = document.entry()
    assert main.id == "main"
    step = main.steps[0]
    assert step.id == "count"
    assert step.run.reference == "#wc"
    assert step.inputs[0].id == "file"
    assert step.inputs[0].source == ["file"]
    assert document.find_graph("#wc").inputs[0].id == "file"


def test_graph_entry_lookup(documents_dir: Path):
    document = load_document(documents_dir / "packed.cwl")
    assert document.entry("wc").id == "wc"
    with pytest.raises(KeyError):
        document.entry("nope")


def test_non_mapping_document_fails():
    with pytest.raises(DecodeError) as exc:
        decode(["not", "a", "mapping"])
    assert exc.value.code == "ERR_DECODE_FAILED"


@pytest.mark.parametrize("tree", [
    {"class": "CommandLineTool", "baseCommand": "echo", "inputs": {"x": {"type": "string", "inputBinding": "nope"}}},
    {"class": "CommandLineTool", "baseCommand": {"bad": 1}},
    {"class": "CommandLineTool", "inputs": [{"type": "string"}]},
    {"class": "Operation"},
    {"class": "Workflow", "steps": {"s": {"in": {}, "out": []}}},
    {"class": "CommandLineTool", "inputs": {"x": {"type": "string", "inputBinding": {"position": "first"}}}},
])
def test_shape_errors_surface_as_one_decode_error(tree):
    with pytest.raises(DecodeError):
        decode(tree)


def test_unparseable_file(documents_dir: Path):
    with pytest.raises(DecodeError) as exc:
        load_document(documents_dir / "broken.cwl")
    assert "broken.cwl" in str(exc.value)


def test_missing_file(tmp_path: Path):
    with pytest.raises(DecodeError):
        load_document(tmp_path / "absent.cwl")


def test_load_parameters(documents_dir: Path, tmp_path: Path):
    params = load_parameters(documents_dir / "cat-job.yml")
    assert params == {"file": {"class": "File", "location": "a.txt"}}
    empty = tmp_path / "empty.yml"
    empty.write_text("")
    assert load_parameters(empty) == {}
    bad = tmp_path / "bad.yml"
    bad.write_text("- 1\n- 2\n")
    with pytest.raises(DecodeError):
        load_parameters(bad)


def test_load_types(documents_dir: Path):
    types = load_types(documents_dir / "types.yml")
    assert len(types) == 1
    assert isinstance(types[0], RecordType)
    assert types[0].name == "Opts"
    assert [f.name for f in types[0].fields] == ["level", "label"]


def test_decoding_is_deterministic(documents_dir: Path):
    first = load_document(documents_dir / "two-step.cwl")
    second = load_document(documents_dir / "two-step.cwl")
    assert first == second
