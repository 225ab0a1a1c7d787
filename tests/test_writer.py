"""Tests for specbind.writer."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from specbind import writer
from specbind.exceptions import EmissionError
from specbind.models import GeneratedModule
from specbind.writer import write_modules


def _modules() -> list[GeneratedModule]:
    return [
        GeneratedModule(name="client", filename="client.ts", content="// client\n"),
        GeneratedModule(name="bindings", filename="hooks.ts", content="// hooks\n"),
        GeneratedModule(name="types", filename="types.ts", content="export {};\n"),
    ]


class TestWriteModules:
    def test_creates_directory_and_files(self, tmp_path: Path) -> None:
        target = tmp_path / "src" / "api"
        paths = write_modules(_modules(), target)
        assert paths == [target / "client.ts", target / "hooks.ts", target / "types.ts"]
        assert (target / "hooks.ts").read_text(encoding="utf-8") == "// hooks\n"

    def test_overwrites_existing_files(self, tmp_path: Path) -> None:
        target = tmp_path / "api"
        target.mkdir()
        (target / "client.ts").write_text("stale", encoding="utf-8")
        (target / "keep.ts").write_text("mine", encoding="utf-8")
        write_modules(_modules(), target)
        assert (target / "client.ts").read_text(encoding="utf-8") == "// client\n"
        assert (target / "keep.ts").read_text(encoding="utf-8") == "mine"

    def test_staging_directory_is_removed(self, tmp_path: Path) -> None:
        write_modules(_modules(), tmp_path / "api")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["api"]

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        paths = write_modules(_modules(), str(tmp_path / "api"))
        assert all(p.is_file() for p in paths)

    def test_failed_move_reports_written_files(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        real_replace = os.replace

        def flaky_replace(src, dst):
            if Path(dst).name == "types.ts":
                raise OSError("disk full")
            real_replace(src, dst)

        monkeypatch.setattr(writer.os, "replace", flaky_replace)
        target = tmp_path / "api"
        with pytest.raises(EmissionError, match="disk full") as exc_info:
            write_modules(_modules(), target)
        assert exc_info.value.written == [str(target / "client.ts"), str(target / "hooks.ts")]
        assert exc_info.value.exit_code == 10
        assert not list(tmp_path.glob(".api.*.staging"))

    def test_failed_staging_leaves_output_untouched(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        target = tmp_path / "api"
        target.mkdir()
        (target / "client.ts").write_text("previous", encoding="utf-8")

        def broken_write_text(self, *args, **kwargs):
            raise OSError("read-only")

        monkeypatch.setattr(Path, "write_text", broken_write_text)
        with pytest.raises(EmissionError) as exc_info:
            write_modules(_modules(), target)
        monkeypatch.undo()
        assert exc_info.value.written == []
        assert (target / "client.ts").read_text(encoding="utf-8") == "previous"
