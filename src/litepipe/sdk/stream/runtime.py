"""
Process-wide resource manager for sqlite3 streams.

A ``StreamRuntime`` is created once at host startup and shut down explicitly.
It owns the private files passed to every sqlite3 launch (an empty init file
so the user's ``~/.sqliterc`` is never read, and a readline ``inputrc`` that
keeps line editing from rewriting piped input), the temporary databases
created for blank database paths, and the set of every process still open.
"""

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from .models import StreamConfigModel
from .util import expand_database_path

logger = logging.getLogger(__name__)

# Shells linked with readline still run it on a pipe; keep it from completing on
# TAB or emitting terminal control sequences into the output.
INPUTRC_SETTINGS = """\
set disable-completion on
set enable-bracketed-paste off
set enable-meta-key off
set horizontal-scroll-mode off
set echo-control-characters off
"""


class ManagedProcess(Protocol):
    """Anything the runtime can force-close at shutdown."""

    async def abort(self) -> None: ...


class StreamRuntime:
    """Tracks open sessions and shared temporary files.

    Example:
        >>> async with StreamRuntime() as runtime:
        ...     session = await StreamSession.open("app.db", runtime=runtime)
        ...     rows = await session.invoke_query("SELECT 1")
    """

    def __init__(self, config: StreamConfigModel | None = None):
        self.config = config or StreamConfigModel()
        self._init_file: Path | None = None
        self._inputrc_file: Path | None = None
        self._temp_databases: list[Path] = []
        self._processes: set[ManagedProcess] = set()
        self._shutdown = False

    async def __aenter__(self) -> "StreamRuntime":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    def _private_file(self, suffix: str, content: str) -> Path:
        if self._shutdown:
            raise RuntimeError("Stream runtime is shut down")
        fd, name = tempfile.mkstemp(prefix="litepipe-", suffix=suffix)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        logger.debug(f"Created {name}")
        return Path(name)

    @property
    def init_file(self) -> Path:
        """Empty init file shared read-only by every launch, created on first use."""
        if self._init_file is None:
            self._init_file = self._private_file(".sqliterc", "")
        return self._init_file

    @property
    def inputrc_file(self) -> Path:
        """Readline settings for interactive launches, created on first use."""
        if self._inputrc_file is None:
            self._inputrc_file = self._private_file(".inputrc", INPUTRC_SETTINGS)
        return self._inputrc_file

    def resolve_database(self, database: str | Path | None) -> str:
        """Return an absolute database path; a blank one gets a fresh temporary file."""
        if database is not None and str(database).strip():
            return expand_database_path(database)
        fd, name = tempfile.mkstemp(prefix="litepipe-", suffix=".sqlite3")
        os.close(fd)
        path = Path(name)
        self._temp_databases.append(path)
        logger.debug(f"Created temporary database {path}")
        return str(path)

    @property
    def sessions(self) -> list[ManagedProcess]:
        return list(self._processes)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def register(self, process: ManagedProcess) -> None:
        if self._shutdown:
            raise RuntimeError("Stream runtime is shut down")
        self._processes.add(process)

    def unregister(self, process: ManagedProcess) -> None:
        self._processes.discard(process)

    async def shutdown(self) -> None:
        """Force-close every open process and remove temporary files."""
        if self._shutdown:
            return
        logger.info(f"Shutting down stream runtime ({len(self._processes)} open)")
        for process in list(self._processes):
            try:
                await process.abort()
            except Exception as e:
                logger.error(f"Error aborting sqlite3 process: {e}")
        self._processes.clear()
        self._shutdown = True

        paths = list(self._temp_databases)
        for private in (self._init_file, self._inputrc_file):
            if private is not None:
                paths.append(private)
        for path in paths:
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
                logger.debug(f"Removed {path}")
        self._temp_databases.clear()
        self._init_file = None
        self._inputrc_file = None


_default_runtime: StreamRuntime | None = None


def get_default_runtime() -> StreamRuntime:
    """Return the runtime used when callers do not pass one explicitly."""
    global _default_runtime
    if _default_runtime is None or _default_runtime.is_shutdown:
        _default_runtime = StreamRuntime()
    return _default_runtime


def set_default_runtime(runtime: StreamRuntime | None) -> None:
    global _default_runtime
    _default_runtime = runtime
