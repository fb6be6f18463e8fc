# File: sqlgen/writer.py
"""
sqlgen - Crash-safe File Writer
================================
``write_atomic`` writes into a temporary sibling file, fsyncs it and renames
it over the destination with ``os.replace``.  Readers therefore see either
the previous file or the complete new one, never a partial write.  When any
step fails, the temporary file is removed and a ``GenerateError`` is raised.
The writer never falls back to a direct, non-atomic write.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from sqlgen.errors import GenerateError
from sqlgen.utils import count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.writer")

Content = Union[str, bytes]


@dataclass(frozen=True, slots=True)
class FileRecord:
    """What was written, for reports and manifests."""

    path: str
    size_bytes: int
    line_count: int
    sha256: str


def _encode(data: Content) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class FileWriter:
    """Writes generated artifacts to disk."""

    def write(self, path: Union[str, Path], data: Content) -> FileRecord:
        """Plain write; parent directories are created as needed."""
        target: Path = Path(path)
        payload: bytes = _encode(data)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as exc:
            raise GenerateError("write failed", file=str(target), cause=exc) from exc
        logger.debug("Wrote %s (%d bytes).", target, len(payload))
        return self._record(target, payload)

    def write_atomic(self, path: Union[str, Path], data: Content) -> FileRecord:
        """
        Atomically replace *path* with *data*.

        The temporary file lives in the destination directory so that the
        final ``os.replace`` stays on one filesystem.
        """
        target: Path = Path(path)
        payload: bytes = _encode(data)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise GenerateError(
                "cannot create output directory", file=str(target), cause=exc
            ) from exc

        fd: int = -1
        tmp_path: str = ""
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(target.parent),
                prefix=f".{target.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as handle:
                fd = -1
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
        except OSError as exc:
            if fd >= 0:
                with contextlib.suppress(OSError):
                    os.close(fd)
            if tmp_path:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)
            logger.error("Atomic write of %s failed: %s", target, exc)
            raise GenerateError("atomic write failed", file=str(target), cause=exc) from exc

        logger.debug("Atomically wrote %s (%d bytes).", target, len(payload))
        return self._record(target, payload)

    @staticmethod
    def _record(target: Path, payload: bytes) -> FileRecord:
        return FileRecord(
            path=str(target),
            size_bytes=len(payload),
            line_count=count_lines(payload),
            sha256=sha256_hex(payload),
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = ["FileRecord", "FileWriter"]

logger.debug("sqlgen.writer loaded.")
