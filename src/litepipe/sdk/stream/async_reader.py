"""
One-shot asynchronous queries with row callbacks.

``start_query`` launches a dedicated ``-batch`` sqlite3 process loaded with a
single statement and pushes each parsed row to a callback as output arrives.
When the process terminates the callback receives ``None`` exactly once,
whatever the exit status.

Batch mode has no structured error channel: an error message printed by the
tool is parsed like any other output line. A non-zero exit code marks the
collected rows as ``unreliable``; it is up to the caller to decide what to do
with them.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from .csv_parser import CsvStreamParser
from .errors import ProcessTerminated
from .models import StreamConfigModel, StreamFlags
from .process import ProcessSupervisor
from .runtime import StreamRuntime, get_default_runtime
from .session import terminate_statement
from .types import Row, RowCallback
from .util import make_null_sentinel

logger = logging.getLogger(__name__)


class AsyncQuery:
    """Handle on a running one-shot query."""

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        sql: str,
        on_row: RowCallback,
        null_sentinel: str,
        runtime: StreamRuntime,
        convert_numbers: bool = True,
    ):
        self.supervisor = supervisor
        self.sql = sql
        self.on_row = on_row
        self.runtime = runtime
        self.row_count = 0
        self.returncode: int | None = None
        self.callback_error: BaseException | None = None
        self._parser = CsvStreamParser(null_sentinel, convert_numbers=convert_numbers)
        self._finished = asyncio.Event()
        self._stopper: asyncio.Task[int] | None = None
        supervisor.output_filter = self._on_output
        self._watcher = asyncio.create_task(self._watch())

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    @property
    def unreliable(self) -> bool:
        """The process exited with an error, so rows may include error text."""
        return self.returncode is not None and self.returncode != 0

    def _deliver(self, row: Row | None) -> None:
        if self.callback_error is not None:
            return
        try:
            self.on_row(row)
        except Exception as e:
            logger.error(f"Row callback failed: {e}")
            self.callback_error = e
            return
        if row is not None:
            self.row_count += 1

    def _on_output(self) -> None:
        for row in self._parser.feed(self.supervisor.take()):
            self._deliver(row)
        if self.callback_error is not None and self._stopper is None and self.supervisor.running:
            # Stop the producer; the watcher still emits the end-of-stream call
            self._stopper = asyncio.get_running_loop().create_task(self.supervisor.terminate())

    async def _watch(self) -> None:
        try:
            self.returncode = await self.supervisor.wait_exit()
        finally:
            for row in self._parser.flush():
                self._deliver(row)
            self._deliver(None)
            self.runtime.unregister(self)
            self._finished.set()
            if self.unreliable:
                logger.warning(
                    f"sqlite3 exited with code {self.returncode}; "
                    f"{self.row_count} rows delivered may include error output"
                )

    async def wait(self, timeout: float | None = None) -> int | None:
        """Wait until the end-of-stream call has been made and return the exit code.

        Raises:
            Exception: The first exception raised by the row callback
        """
        await asyncio.wait_for(self._finished.wait(), timeout)
        if self._stopper is not None:
            await self._stopper
        if self.callback_error is not None:
            raise self.callback_error
        return self.returncode

    async def abort(self) -> None:
        await self.supervisor.terminate()
        await self._finished.wait()


async def start_query(
    database: str | Path | None,
    sql: str,
    on_row: RowCallback,
    flags: StreamFlags | None = None,
    *,
    config: StreamConfigModel | None = None,
    runtime: StreamRuntime | None = None,
) -> AsyncQuery:
    """Launch a one-shot query whose rows are pushed to ``on_row``.

    Args:
        database: Database file; blank for a fresh temporary database
        sql: A single statement
        on_row: Called with each row, then with None once at end of stream
        flags: Launch flags (always run in batch mode)

    Raises:
        ProgramNotFound: If sqlite3 cannot be run
        ConfigurationError: If a pty relay is required but unavailable
    """
    runtime = runtime or get_default_runtime()
    config = config or runtime.config
    flags = (flags or StreamFlags()).model_copy(update={"interactive": False})
    path = runtime.resolve_database(database)
    sentinel = config.null_sentinel or make_null_sentinel(sql)

    supervisor = await ProcessSupervisor.launch(config, path, flags, runtime.init_file, sentinel)
    query = AsyncQuery(supervisor, sql, on_row, sentinel, runtime, config.convert_numbers)
    runtime.register(query)
    try:
        await supervisor.send(terminate_statement(sql))
        await supervisor.close_stdin()
    except ProcessTerminated:
        # The watcher still reports the exit code and the end of stream
        logger.warning(f"sqlite3 exited before the statement was sent: {sql!r}")
    logger.debug(f"Started async query on {path}")
    return query


async def collect_query(
    database: str | Path | None, sql: str, **kwargs: Any
) -> tuple[list[Row], bool]:
    """Run ``sql`` through :func:`start_query` and gather its rows.

    Returns:
        ``(rows, unreliable)``
    """
    rows: list[Row] = []

    def on_row(row: Row | None) -> None:
        if row is not None:
            rows.append(row)

    query = await start_query(database, sql, on_row, **kwargs)
    await query.wait()
    return rows, query.unreliable
