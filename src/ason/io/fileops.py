"""File operations: safe reads, atomic writes, output locking, mode detection."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import time
from datetime import datetime, timezone
from io import TextIOWrapper
from pathlib import Path

import orjson
import portalocker

STDIO = "-"
JSON_SUFFIXES = {".json"}
ASON_SUFFIXES = {".ason"}


def read_text_safe(path: str | Path) -> str:
    """Read a text file with UTF-8 BOM tolerance.

    Uses ``utf-8-sig`` encoding which silently strips a leading BOM when
    present, while reading plain UTF-8 correctly.
    """
    return Path(path).read_text(encoding="utf-8-sig")


def read_input(path: str | None) -> str:
    """Read ``path``, or stdin when it is None or ``-``."""
    if path is None or path == STDIO:
        text = sys.stdin.read()
        return text.removeprefix("\ufeff")
    return read_text_safe(path)


def atomic_write(target: str | Path, data: bytes) -> None:
    """Write data to target atomically via temp file + rename."""
    target = Path(target)
    fd, tmp_path = tempfile.mkstemp(
        dir=target.parent, suffix=target.suffix, prefix=".ason_tmp_"
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


class OutputLock:
    """Exclusive sidecar lock held while an output file is written.

    Uses a ``<file>.ason.lock`` sidecar so two conversions never race on the
    same target. The OS releases the lock if the process dies; a leftover
    sidecar file is stale and simply re-locked by the next writer.
    """

    def __init__(self, target: str | Path, *, timeout: float = 0) -> None:
        self.target = Path(target).resolve()
        self.timeout = timeout
        self._lock_path = self.target.parent / (self.target.name + ".ason.lock")
        self._lock_file: TextIOWrapper | None = None

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def __enter__(self) -> "OutputLock":
        self._lock_file = open(self._lock_path, "a+")  # noqa: SIM115
        try:
            if self.timeout <= 0:
                portalocker.lock(self._lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
            else:
                deadline = time.monotonic() + self.timeout
                interval = min(0.1, max(0.01, self.timeout / 20))
                while True:
                    try:
                        portalocker.lock(self._lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
                        break
                    except portalocker.LockException:
                        if time.monotonic() >= deadline:
                            raise
                        time.sleep(interval)
        except portalocker.LockException:
            self._lock_file.close()
            self._lock_file = None
            raise

        self._lock_file.seek(0)
        self._lock_file.truncate()
        self._lock_file.write(f"pid={os.getpid()}\n")
        self._lock_file.write(f"time={datetime.now(timezone.utc).isoformat()}\n")
        self._lock_file.flush()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if self._lock_file is not None:
            try:
                portalocker.unlock(self._lock_file)
            finally:
                self._lock_file.close()
                self._lock_file = None


def write_output(target: str | Path, text: str, *, timeout: float = 0) -> str:
    """Atomically write ``text`` (UTF-8, trailing newline) under an output lock."""
    target = Path(target)
    with OutputLock(target, timeout=timeout):
        atomic_write(target, (text + "\n").encode("utf-8"))
    return str(target)


def detect_mode(path: str | None, text: str) -> str:
    """Return ``"encode"`` for JSON input and ``"decode"`` for ASON input.

    The file extension decides when it is known; otherwise text that parses
    as JSON is treated as JSON.
    """
    if path and path != STDIO:
        suffix = Path(path).suffix.lower()
        if suffix in JSON_SUFFIXES:
            return "encode"
        if suffix in ASON_SUFFIXES:
            return "decode"
    try:
        orjson.loads(text)
    except orjson.JSONDecodeError:
        return "decode"
    return "encode"
