"""
Global pytest configuration and fixtures.
"""

import os
import shutil

import pytest

from litepipe.sdk.stream import StreamConfigModel, StreamRuntime, StreamSession, set_default_runtime


def pytest_collection_modifyitems(config, items):
    """Skip tests marked ``requires_sqlite`` when no sqlite3 program is installed."""
    if shutil.which("sqlite3") is not None:
        return
    skip = pytest.mark.skip(reason="sqlite3 program not found on PATH")
    for item in items:
        if "requires_sqlite" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep user configuration out of every test."""
    for name in (
        "LITEPIPE_CONFIG",
        "LITEPIPE_DATABASE",
        "LITEPIPE_DEBUG",
        "LITEPIPE_READONLY",
        "LITEPIPE_SQLITE_PROGRAM",
        "LITEPIPE_QUIT_TIMEOUT",
        "LITEPIPE_USE_PTY",
        "LITEPIPE_PTY_RELAY",
        "LITEPIPE_CONVERT_NUMBERS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
async def runtime():
    """A stream runtime that is shut down after the test."""
    runtime = StreamRuntime(StreamConfigModel(quit_timeout=2.0))
    set_default_runtime(runtime)
    try:
        yield runtime
    finally:
        await runtime.shutdown()
        set_default_runtime(None)


@pytest.fixture
def database(tmp_path) -> str:
    return os.fspath(tmp_path / "test.db")


@pytest.fixture
async def session(runtime, database):
    session = await StreamSession.open(database, runtime=runtime)
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
async def populated(session):
    """Session on a database holding the two-row table ``t(a, b)``."""
    await session.execute("CREATE TABLE t(a INTEGER, b TEXT)")
    await session.execute("INSERT INTO t VALUES (1, 'x'), (2, NULL)")
    return session
