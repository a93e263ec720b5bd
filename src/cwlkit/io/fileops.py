"""File operations: checksums, atomic write, staging copies, output-dir locking."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from io import TextIOWrapper
from pathlib import Path

import portalocker

LOAD_CONTENTS_LIMIT = 64 * 1024


def checksum(path: str | Path) -> str:
    """Compute the SHA-1 checksum of a file in CWL ``sha1$<hex>`` form."""
    h = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return f"sha1${h.hexdigest()}"


def atomic_write(target: str | Path, data: bytes) -> None:
    """Write data to target atomically via temp file + rename."""
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=target.parent, suffix=target.suffix, prefix=".cwlkit_tmp_"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        shutil.move(tmp_path, target)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def copy_path(source: str | Path, target: str | Path) -> None:
    """Copy a file (hard link when possible) or a directory tree into place."""
    source = Path(source)
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, target, dirs_exist_ok=True)
        return
    if target.exists():
        target.unlink()
    try:
        os.link(source, target)
    except OSError:
        shutil.copy2(source, target)


def read_text_safe(path: str | Path) -> str:
    """Read a text file with UTF-8 BOM tolerance.

    Uses ``utf-8-sig`` encoding which silently strips a leading BOM when
    present, while reading plain UTF-8 correctly.
    """
    return Path(path).read_text(encoding="utf-8-sig")


def read_head(path: str | Path, limit: int = LOAD_CONTENTS_LIMIT) -> str:
    """Read at most ``limit`` bytes of a file, as ``loadContents`` does."""
    with open(path, "rb") as f:
        data = f.read(limit)
    return data.decode("utf-8", errors="replace")


class OutputDirLock:
    """Exclusive sidecar lock held while staging files into an output directory.

    The lock file is ``<dir>.cwlkit.lock`` beside the directory, so it never
    matches an output glob.  A crashed holder leaves the file behind unlocked
    and the next holder reuses it.
    """

    def __init__(self, directory: str | Path, *, timeout: float = 0) -> None:
        self.directory = Path(directory).resolve()
        self.timeout = timeout
        self._lock_path = self.directory.with_name(self.directory.name + ".cwlkit.lock")
        self._lock_file: TextIOWrapper | None = None

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def _acquire(self, handle: TextIOWrapper) -> None:
        flags = portalocker.LOCK_EX | portalocker.LOCK_NB
        deadline = time.monotonic() + max(self.timeout, 0)
        poll = min(0.1, max(0.01, self.timeout / 20))
        while True:
            try:
                portalocker.lock(handle, flags)
                return
            except portalocker.LockException:
                if time.monotonic() >= deadline:
                    raise
                time.sleep(poll)

    def __enter__(self) -> "OutputDirLock":
        self.directory.mkdir(parents=True, exist_ok=True)
        handle = open(self._lock_path, "a+")  # noqa: SIM115
        try:
            self._acquire(handle)
        except portalocker.LockException:
            handle.close()
            raise
        handle.seek(0)
        handle.truncate()
        handle.write(f"pid={os.getpid()}\ndir={self.directory}\n")
        handle.write(f"time={datetime.now(timezone.utc).isoformat()}\n")
        handle.flush()
        self._lock_file = handle
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        handle, self._lock_file = self._lock_file, None
        if handle is None:
            return
        try:
            portalocker.unlock(handle)
        finally:
            handle.close()
