"""Tests for sqlite3 program and database file helpers."""

import subprocess
from pathlib import Path

import pytest

from litepipe.sdk.stream import (
    ConfigurationError,
    ProgramNotFound,
    check_version,
    expand_database_path,
    installed_version,
    is_sqlite_database,
    make_null_sentinel,
)
from litepipe.sdk.stream import util


def test_null_sentinel_shape():
    sentinel = make_null_sentinel("SELECT 1")
    assert sentinel.startswith("NULL-")
    assert len(sentinel) == len("NULL-") + 10


def test_null_sentinels_differ_per_seed():
    assert make_null_sentinel("SELECT 1") != make_null_sentinel("SELECT 2")


def test_expand_database_path(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert expand_database_path("~/app.db") == str(tmp_path.resolve() / "app.db")
    assert Path(expand_database_path("relative.db")).is_absolute()


def test_is_sqlite_database(tmp_path):
    database = tmp_path / "real.db"
    database.write_bytes(util.SQLITE_MAGIC + b"\x00" * 84)
    text = tmp_path / "notes.txt"
    text.write_text("SQLite format 2")

    assert is_sqlite_database(database)
    assert not is_sqlite_database(text)
    assert not is_sqlite_database(tmp_path / "missing.db")


class TestInstalledVersion:
    """Version detection with the program call mocked out."""

    @pytest.fixture
    def fake_sqlite(self, monkeypatch):
        def install(stdout: str):
            monkeypatch.setattr(util.shutil, "which", lambda program: f"/usr/bin/{program}")
            monkeypatch.setattr(
                util.subprocess,
                "run",
                lambda args, **kwargs: subprocess.CompletedProcess(args, 0, stdout=stdout, stderr=""),
            )

        return install

    def test_parses_version(self, fake_sqlite):
        fake_sqlite("3.45.1 2024-01-30 16:01:20 e876e51a0ed5c5b3126f52e532044363a014bc594cfefa87ffb5b82257ccalt1\n")
        assert installed_version() == (3, 45, 1)

    def test_check_version(self, fake_sqlite):
        fake_sqlite("3.45.1 2024-01-30\n")
        assert check_version((3, 8)) == (3, 45, 1)
        with pytest.raises(ConfigurationError, match="3.50 or later"):
            check_version((3, 50))

    def test_unparseable_output(self, fake_sqlite):
        fake_sqlite("not a version\n")
        with pytest.raises(ConfigurationError):
            installed_version()

    def test_missing_program(self):
        with pytest.raises(ProgramNotFound) as exc_info:
            installed_version("litepipe-no-such-sqlite3")
        assert exc_info.value.program == "litepipe-no-such-sqlite3"
