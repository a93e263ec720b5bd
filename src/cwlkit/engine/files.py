"""File and Directory objects, secondary-file naming, and output entries."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

from cwlkit.contracts.common import FileOperationError, ResolveError, UnsupportedConstructError
from cwlkit.contracts.params import SecondaryFile
from cwlkit.io.fileops import checksum

FILE_CLASSES = ("File", "Directory")


def is_file_object(value: Any) -> bool:
    return isinstance(value, dict) and value.get("class") in FILE_CLASSES


def _strip_scheme(location: str) -> str:
    if location.startswith("file://"):
        return location[len("file://"):]
    return location


def file_object(
    value: Any,
    base_dir: str | None = None,
    *,
    cls: str = "File",
    list_directory: bool = True,
) -> dict[str, Any]:
    """Normalize a File/Directory literal to an object with path and name parts.

    Relative locations are joined onto ``base_dir`` when one is given and
    left untouched otherwise.
    """
    data = {"class": cls, "location": value} if isinstance(value, str) else dict(value)
    kind = data.get("class") or cls
    location = data.get("path") or data.get("location")
    if location is None:
        if kind == "File" and "contents" in data:
            raise UnsupportedConstructError("File literals with inline 'contents' are not supported")
        if kind == "Directory" and "listing" in data:
            raise UnsupportedConstructError("Directory literals without a location are not supported")
        raise ResolveError(f"{kind} value has neither 'location' nor 'path'", details={"value": data})

    path = _strip_scheme(str(location))
    if base_dir and "://" not in path and not os.path.isabs(path):
        path = os.path.join(base_dir, path)

    basename = data.get("basename") or os.path.basename(path.rstrip("/"))
    nameroot, nameext = os.path.splitext(basename)
    data.update({
        "class": kind,
        "location": data.get("location", path),
        "path": path,
        "basename": basename,
        "dirname": os.path.dirname(path),
        "nameroot": nameroot,
        "nameext": nameext,
    })
    if kind == "Directory" and list_directory and "listing" not in data and os.path.isdir(path):
        data["listing"] = [
            file_object(
                {"class": "Directory" if child.is_dir() else "File", "location": str(child)},
                list_directory=False,
            )
            for child in sorted(Path(path).iterdir())
        ]
    return data


def secondary_name(basename: str, pattern: str) -> str:
    """Apply a suffix rule: each leading ``^`` strips one extension first."""
    while pattern.startswith("^"):
        pattern = pattern[1:]
        basename = os.path.splitext(basename)[0]
    return basename + pattern


def secondary_files_for(
    primary: dict[str, Any],
    declarations: list[SecondaryFile],
    evaluate: Callable[[str, Any], Any],
) -> list[dict[str, Any]]:
    """Compute the secondary files of ``primary``.

    ``evaluate(pattern, self_value)`` evaluates an expression pattern with
    ``self`` bound to the primary file; it may return a name, a file object
    or a list of either.  Names are relative to the primary's directory.
    """
    parent = primary.get("dirname") or os.path.dirname(primary.get("path", ""))
    found: list[dict[str, Any]] = []
    for decl in declarations:
        if "$(" in decl.pattern or "${" in decl.pattern:
            result = evaluate(decl.pattern, primary)
            items = result if isinstance(result, list) else [result]
        else:
            items = [secondary_name(primary.get("basename", ""), decl.pattern)]
        for item in items:
            if item is None:
                continue
            if isinstance(item, str):
                item = {"class": "File", "location": item}
            found.append(file_object(item, parent, list_directory=False))
    return found


def entry_for(path: str | Path, location: str) -> dict[str, Any]:
    """Describe an existing output path in CWL output-object form."""
    path = Path(path)
    try:
        if path.is_dir():
            return {
                "class": "Directory",
                "location": location,
                "listing": [
                    entry_for(child, f"{location}/{child.name}")
                    for child in sorted(path.iterdir())
                ],
            }
        return {
            "class": "File",
            "location": location,
            "size": path.stat().st_size,
            "checksum": checksum(path),
        }
    except OSError as e:
        raise FileOperationError(f"Cannot stat output {path}: {e}", details={"path": str(path)}) from e
