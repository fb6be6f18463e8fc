# File: sqlgen/utils.py
"""
sqlgen - Small Shared Helpers
==============================
Step timing, content checksums, and an opt-in stderr logging setup for
hosts embedding the engine.
"""

from __future__ import annotations

import hashlib
import logging
import sys
import time
from typing import List, Optional, Union

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.utils")

_LOG_FORMAT: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
_LOG_DATEFMT: str = "%H:%M:%S"


def configure_logging(verbosity: int = 1) -> logging.Logger:
    """
    Attach a stderr handler to the ``sqlgen`` logger.

    ``verbosity``: 0 = WARNING, 1 = INFO, 2+ = DEBUG.  Existing handlers on
    the ``sqlgen`` logger are replaced and propagation is turned off so that
    repeated calls never duplicate output.
    """
    if verbosity >= 2:
        level: int = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))

    root: logging.Logger = logging.getLogger("sqlgen")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
    return root


# ---------------------------------------------------------------------------
# Checksums & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: Union[str, bytes]) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def count_lines(content: Union[str, bytes]) -> int:
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not content:
        return 0
    return content.count("\n") + (0 if content.endswith("\n") else 1)


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


class Timer:
    """
    Context manager that measures a pipeline step.

        with Timer("parse") as t:
            ...
        t.elapsed  # seconds
    """

    __slots__ = ("label", "start", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.elapsed = time.perf_counter() - self.start
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "configure_logging",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("sqlgen.utils loaded.")
