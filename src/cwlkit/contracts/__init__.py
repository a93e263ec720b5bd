"""Pydantic models for documents, commands, and responses."""

from cwlkit.contracts.commands import Command, ResolveConfig
from cwlkit.contracts.common import (
    CwlError,
    DecodeError,
    EntryNotFoundError,
    ErrorDetail,
    ExpressionEvaluationError,
    FileOperationError,
    Metrics,
    MissingInputError,
    PendingValueError,
    ResolveError,
    ResponseEnvelope,
    ScatterError,
    Target,
    UnsupportedConstructError,
    WarningDetail,
)
from cwlkit.contracts.document import LinkMerge, Root, RunTarget, ScatterMethod, Step, StepInput, StepOutput
from cwlkit.contracts.params import Argument, DefaultValue, InputParameter, OutputParameter, SecondaryFile
from cwlkit.contracts.responses import ResolveResult, ValidationResult
from cwlkit.contracts.types import (
    ArrayType,
    Binding,
    EnumType,
    RecordField,
    RecordType,
    ReferenceType,
    ScalarType,
)

__all__ = [
    "Argument",
    "ArrayType",
    "Binding",
    "Command",
    "CwlError",
    "DecodeError",
    "DefaultValue",
    "EntryNotFoundError",
    "EnumType",
    "ErrorDetail",
    "ExpressionEvaluationError",
    "FileOperationError",
    "InputParameter",
    "LinkMerge",
    "Metrics",
    "MissingInputError",
    "OutputParameter",
    "PendingValueError",
    "RecordField",
    "RecordType",
    "ReferenceType",
    "ResolveConfig",
    "ResolveError",
    "ResolveResult",
    "ResponseEnvelope",
    "Root",
    "RunTarget",
    "ScalarType",
    "ScatterError",
    "ScatterMethod",
    "SecondaryFile",
    "Step",
    "StepInput",
    "StepOutput",
    "Target",
    "UnsupportedConstructError",
    "ValidationResult",
    "WarningDetail",
]
