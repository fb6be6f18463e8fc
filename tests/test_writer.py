"""
tests/test_writer.py
Unit tests for sqlgen.writer.

Tests cover:
- Atomic writes creating parent directories and replacing old content
- Cleanup of temporary files when the final rename fails
- FileRecord metrics
"""

from __future__ import annotations

import hashlib
import os
import pathlib
from typing import Any

import pytest

from sqlgen.errors import GenerateError
from sqlgen.writer import FileWriter


# ===========================================================================
# write_atomic
# ===========================================================================


class TestWriteAtomic:
    def test_creates_parents_and_writes(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "models" / "users.go"
        record = FileWriter().write_atomic(target, "package models\n")
        assert target.read_text(encoding="utf-8") == "package models\n"
        assert record.path == str(target)
        assert record.size_bytes == len(b"package models\n")
        assert record.line_count == 1
        assert record.sha256 == hashlib.sha256(b"package models\n").hexdigest()

    def test_replaces_existing_content(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "schema.sql"
        target.write_text("old", encoding="utf-8")
        FileWriter().write_atomic(target, "new\ncontent\n")
        assert target.read_text(encoding="utf-8") == "new\ncontent\n"
        assert [p.name for p in tmp_path.iterdir()] == ["schema.sql"]

    def test_accepts_bytes(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "blob.bin"
        record = FileWriter().write_atomic(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"
        assert record.size_bytes == 2

    def test_failed_rename_leaves_no_trace(
        self, tmp_path: pathlib.Path, monkeypatch: Any
    ) -> None:
        def broken_replace(src: Any, dst: Any) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)
        target = tmp_path / "out" / "users.go"

        with pytest.raises(GenerateError) as exc_info:
            FileWriter().write_atomic(target, "package models\n")

        assert not target.exists()
        assert list(target.parent.glob("*.tmp")) == []
        assert list(target.parent.iterdir()) == []
        assert exc_info.value.file == str(target)
        assert isinstance(exc_info.value.cause, OSError)

    def test_failed_rename_keeps_previous_file(
        self, tmp_path: pathlib.Path, monkeypatch: Any
    ) -> None:
        target = tmp_path / "users.go"
        target.write_text("previous", encoding="utf-8")

        def broken_replace(src: Any, dst: Any) -> None:
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(GenerateError):
            FileWriter().write_atomic(target, "next")
        assert target.read_text(encoding="utf-8") == "previous"


# ===========================================================================
# write
# ===========================================================================


class TestWrite:
    def test_plain_write(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "a" / "b.txt"
        record = FileWriter().write(target, "x\ny")
        assert target.read_text(encoding="utf-8") == "x\ny"
        assert record.line_count == 2

    def test_directory_conflict_raises(self, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(GenerateError) as exc_info:
            FileWriter().write(blocker / "child.txt", "data")
        assert exc_info.value.file.endswith("child.txt")
