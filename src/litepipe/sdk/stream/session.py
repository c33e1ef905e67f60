"""
Synchronous-style request/response API over one sqlite3 shell.

A ``StreamSession`` sends one statement at a time, waits for the prompt that
follows it and turns the CSV output in between into rows. Exactly one
statement may be in flight: every public coroutine here awaits
synchronization before it returns, so awaiting calls in sequence is all the
discipline a caller needs.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from .csv_parser import drain
from .errors import ProcessTerminated, SessionClosed, SqlSyntaxError
from .models import StreamConfigModel, StreamFlags
from .process import ProcessSupervisor
from .runtime import StreamRuntime, get_default_runtime
from .sync import (
    CONTINUATION_PROMPT_RE,
    ERROR_LINE_RE,
    PROMPT,
    PromptSynchronizer,
    strip_prompt,
)
from .types import Row, SessionState, SyncResult
from .util import make_null_sentinel

logger = logging.getLogger(__name__)


def _line_comment_start(sql: str) -> int | None:
    """Index of a ``--`` comment running to the end of ``sql``, if there is one."""
    pos = 0
    size = len(sql)
    while pos < size:
        char = sql[pos]
        if char in "'\"`[":
            close = sql.find("]" if char == "[" else char, pos + 1)
            if close < 0:
                return None
            pos = close + 1
        elif sql.startswith("/*", pos):
            close = sql.find("*/", pos + 2)
            if close < 0:
                return None
            pos = close + 2
        elif sql.startswith("--", pos):
            newline = sql.find("\n", pos)
            if newline < 0:
                return pos
            pos = newline + 1
        else:
            pos += 1
    return None


def terminate_statement(sql: str) -> str:
    """Append ``;`` and a newline unless ``sql`` already ends with them.

    A trailing line comment after the terminator is dropped. Before it, the
    terminator goes on a line of its own so it does not end up in the comment.
    """
    text = sql.rstrip()
    comment = _line_comment_start(text)
    if comment is not None:
        code = text[:comment].rstrip()
        if code.endswith(";"):
            return code + "\n"
        return text + "\n;\n"
    if not text.endswith(";"):
        text += ";"
    return text + "\n"


class StreamSession:
    """One live sqlite3 process plus its buffer and NULL sentinel."""

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        database: str,
        null_sentinel: str,
        config: StreamConfigModel,
        runtime: StreamRuntime,
        pinned_sentinel: bool = False,
        header: bool = False,
    ):
        self.supervisor = supervisor
        self.database = database
        self.null_sentinel = null_sentinel
        self.config = config
        self.runtime = runtime
        self.state = SessionState.AWAITING_PROMPT
        self.error_message: str | None = None
        self._pinned_sentinel = pinned_sentinel
        self._header = header
        self._accumulated: list[Row] | None = None
        self._lines_in_flight = 0
        self._continuations_seen = 0
        self._echo_lines: list[str] = []
        self._header_pending = False
        self._closed = False
        self._synchronizer = PromptSynchronizer(config.poll_interval, config.max_poll_interval)

    @classmethod
    async def open(
        cls,
        database: str | Path | None = None,
        *,
        null_sentinel: str | None = None,
        flags: StreamFlags | None = None,
        config: StreamConfigModel | None = None,
        runtime: StreamRuntime | None = None,
    ) -> "StreamSession":
        """Launch sqlite3 on ``database`` and wait for its first prompt.

        Args:
            database: Database file; blank for a fresh temporary database
            null_sentinel: Pin a NULL sentinel for the whole session instead of
                negotiating one per query
            flags: Launch flags (always run interactively)
            config: Stream configuration; defaults to the runtime's
            runtime: Resource manager tracking the session

        Raises:
            ProgramNotFound: If sqlite3 cannot be run
            ConfigurationError: If a pty relay is required but unavailable
            ProcessTerminated: If sqlite3 exits before its first prompt
        """
        runtime = runtime or get_default_runtime()
        config = config or runtime.config
        flags = (flags or StreamFlags()).model_copy(update={"interactive": True})
        pinned = null_sentinel or config.null_sentinel
        path = runtime.resolve_database(database)
        sentinel = pinned or make_null_sentinel(path)

        supervisor = await ProcessSupervisor.launch(
            config, path, flags, runtime.init_file, sentinel, inputrc=runtime.inputrc_file
        )
        session = cls(
            supervisor,
            path,
            sentinel,
            config,
            runtime,
            pinned_sentinel=pinned is not None,
            header=flags.header,
        )
        runtime.register(session)
        try:
            result = await session.synchronize()
            if result.state is not SessionState.READY:
                raise ProcessTerminated(supervisor.returncode, supervisor.buffer)
        except BaseException:
            await session.abort()
            raise
        # Banner and "-- Loading resources" lines precede the first prompt
        supervisor.clear()
        session.error_message = None
        logger.info(f"Opened sqlite3 session on {path}")
        return session

    async def __aenter__(self) -> "StreamSession":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # Buffer view used by the prompt synchronizer

    @property
    def buffer(self) -> str:
        return self.supervisor.buffer

    @property
    def running(self) -> bool:
        return self.supervisor.running

    @property
    def output_event(self) -> asyncio.Event:
        return self.supervisor.output_event

    @property
    def awaiting_more_input(self) -> bool:
        """The tool consumed every line sent and still prompts for a continuation."""
        return (
            self._lines_in_flight > 0
            and self._continuations_seen >= self._lines_in_flight
            and self.supervisor.buffer == ""
        )

    def skip_input_echo(self) -> None:
        """Drop what the shell prints back while reading the statement in flight.

        Every line after the first is preceded by a continuation prompt, and a
        shell linked with readline also echoes each line it reads. Echo
        stripping stops for good at the first output that is not the next
        sent line.
        """
        while True:
            buffer = self.supervisor.buffer
            if self._continuations_seen < self._lines_in_flight:
                match = CONTINUATION_PROMPT_RE.match(buffer)
                if match is not None:
                    self.supervisor.consume(match.end())
                    self._continuations_seen += 1
                    continue
            if not self._echo_lines:
                return
            # Readline displays tabs expanded; both prompts are 8 columns wide
            line = self._echo_lines[0]
            candidates = {line + "\n", line.expandtabs(8) + "\n"}
            echoed = next((c for c in candidates if buffer.startswith(c)), None)
            if echoed is not None:
                self.supervisor.consume(len(echoed))
                self._echo_lines.pop(0)
                continue
            if any(c.startswith(buffer) for c in candidates):
                return
            self._echo_lines = []

    @property
    def alive(self) -> bool:
        return not self._closed and self.supervisor.running

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pinned_sentinel(self) -> bool:
        return self._pinned_sentinel

    # Protocol primitives

    async def synchronize(self, timeout: float | None = None) -> SyncResult:
        result = await self._synchronizer.wait_until_ready(self, timeout)
        self.state = result.state
        return result

    async def send(self, text: str) -> None:
        """Send raw text without waiting for the prompt.

        Raises:
            SessionClosed: If the session was closed
            ProcessTerminated: If the process is gone
        """
        if self._closed:
            raise SessionClosed(f"Session on {self.database} is closed")
        if not text.endswith("\n"):
            text += "\n"
        # Anything still buffered belongs to an already synchronized statement
        self.supervisor.clear()
        self.error_message = None
        self.state = SessionState.AWAITING_PROMPT
        self._lines_in_flight = text.count("\n")
        self._continuations_seen = 0
        self._echo_lines = text.split("\n")[:-1]
        self._header_pending = self._header
        await self.supervisor.send(text)

    async def _check(self, result: SyncResult, statement: str) -> None:
        if result.state is SessionState.ERRORED:
            self.supervisor.clear()
            raise SqlSyntaxError(result.message or "unknown error", statement)
        if result.state is SessionState.TERMINATED:
            output = self.supervisor.buffer
            await self.abort()
            raise ProcessTerminated(self.supervisor.returncode, output)

    async def execute(self, sql: str) -> None:
        """Send one statement and wait until the tool accepted it.

        Any output the statement produces is discarded.

        Raises:
            SqlSyntaxError: If the tool rejected the statement
            ProcessTerminated: If the process exited
        """
        statement = terminate_statement(sql)
        await self.send(statement)
        result = await self.synchronize()
        await self._check(result, sql)
        self.supervisor.clear()

    async def set_option(self, command: str) -> str:
        """Send a dot-command and return its immediate response text.

        Example:
            >>> await session.set_option(".print hello")
            'hello'
        """
        await self.send(command.strip() + "\n")
        result = await self.synchronize()
        await self._check(result, command)
        response = strip_prompt(self.supervisor.take())
        return response.strip()

    async def set_header(self, enabled: bool) -> None:
        """Turn header echo on or off, skipping the round trip when already set."""
        if self._header != enabled:
            await self.set_option(".headers on" if enabled else ".headers off")
            self._header = enabled

    async def negotiate_null_sentinel(self, seed: str = "") -> str:
        """Install a fresh NULL sentinel unless one was pinned at open."""
        if not self._pinned_sentinel:
            sentinel = make_null_sentinel(seed)
            await self.set_option(f".nullvalue {sentinel}")
            self.null_sentinel = sentinel
        return self.null_sentinel

    # Row accumulation

    def _take_rows(self, limit: int | None = None) -> list[Row]:
        """Consume complete records of the statement in flight from the buffer.

        With headers on, the first record holds column names and is kept as
        the raw text the shell printed.
        """
        self.skip_input_echo()
        rows: list[Row] = []
        if self._header_pending:
            result = drain(self.supervisor.buffer, limit=1, stop_at=ERROR_LINE_RE, convert_numbers=False)
            if not result.rows:
                return rows
            self.supervisor.consume(result.consumed)
            self._header_pending = False
            rows.extend(result.rows)
            if limit is not None:
                limit -= 1
                if limit == 0:
                    return rows
        result = drain(
            self.supervisor.buffer,
            self.null_sentinel,
            limit=limit,
            stop_at=ERROR_LINE_RE,
            convert_numbers=self.config.convert_numbers,
        )
        self.supervisor.consume(result.consumed)
        rows.extend(result.rows)
        return rows

    def _accumulate(self) -> None:
        if self._accumulated is None:
            return
        self._accumulated.extend(self._take_rows())

    async def _collect(self, sql: str) -> list[Row]:
        await self.negotiate_null_sentinel(sql)
        self._accumulated = []
        self.supervisor.output_filter = self._accumulate
        try:
            await self.send(terminate_statement(sql))
            result = await self.synchronize()
            self._accumulate()
            await self._check(result, sql)
            rows = self._accumulated
        finally:
            self.supervisor.output_filter = None
            self._accumulated = None
        self.supervisor.clear()
        return rows

    async def invoke_query(self, sql: str) -> list[Row]:
        """Run a query and return all of its rows.

        Raises:
            SqlSyntaxError: If the tool rejected the statement
            ProcessTerminated: If the process exited
        """
        await self.set_header(False)
        rows = await self._collect(sql)
        logger.debug(f"Query returned {len(rows)} rows")
        return rows

    async def query_with_header(self, sql: str) -> tuple[list[str], list[Row]]:
        """Run a query and return ``(column_names, rows)``.

        The shell prints no header for an empty result, so the names are
        empty in that case.
        """
        await self.set_header(True)
        rows = await self._collect(sql)
        if not rows:
            return [], []
        return [str(name) for name in rows[0]], rows[1:]

    async def query_to_dict(self, sql: str) -> list[dict[str, Any]]:
        """Run a query and return its rows as dictionaries keyed by column name."""
        header, rows = await self.query_with_header(sql)
        return [dict(zip(header, row)) for row in rows]

    async def next_row(self) -> Row | None:
        """Pull one more record of the statement in flight.

        Returns:
            The next row, or None once the prompt shows there are no more

        Raises:
            SqlSyntaxError: If the tool reported an error
            ProcessTerminated: If the process exited
        """
        delay = self.config.poll_interval
        while True:
            rows = self._take_rows(limit=1)
            if rows:
                return rows[0]

            state = self._synchronizer.inspect(self)
            self.state = state.state
            if state.state is SessionState.READY:
                self.supervisor.clear()
                return None
            await self._check(state, "")

            if await self.supervisor.wait_for_output(delay):
                delay = self.config.poll_interval
            else:
                delay = min(delay * 2, self.config.max_poll_interval)

    # Lifecycle

    async def close(self, timeout: float | None = None) -> None:
        """Send ``.quit`` and wait for the process to exit, killing it on timeout."""
        if self._closed:
            return
        self._closed = True
        timeout = self.config.quit_timeout if timeout is None else timeout
        try:
            if self.supervisor.running:
                try:
                    await self.supervisor.send(".quit\n")
                    await self.supervisor.close_stdin()
                    await self.supervisor.wait_exit(timeout)
                except ProcessTerminated:
                    logger.debug("sqlite3 exited before .quit was sent")
                except asyncio.TimeoutError:
                    logger.warning(
                        f"sqlite3 (pid {self.supervisor.pid}) did not quit within {timeout}s"
                    )
            await self.supervisor.terminate()
        finally:
            self.supervisor.clear()
            self.runtime.unregister(self)
            logger.info(f"Closed sqlite3 session on {self.database}")

    async def abort(self) -> None:
        """Kill the process without the graceful ``.quit``."""
        self._closed = True
        try:
            await self.supervisor.terminate()
        finally:
            self.runtime.unregister(self)


async def onetime_stream(
    database: str | Path | None = None, **kwargs: Any
) -> StreamSession:
    """Open a session meant for a single unit of work; the caller closes it."""
    return await StreamSession.open(database, **kwargs)


@asynccontextmanager
async def open_stream(
    database: str | Path | None = None, **kwargs: Any
) -> AsyncIterator[StreamSession]:
    """Context manager that opens a session and always closes it."""
    session = await StreamSession.open(database, **kwargs)
    try:
        yield session
    finally:
        await session.close()


async def read_query(database: str | Path | None, sql: str, **kwargs: Any) -> list[Row]:
    """One-shot read: open a session, run ``sql``, close the session."""
    async with open_stream(database, **kwargs) as session:
        return await session.invoke_query(sql)


__all__ = [
    "PROMPT",
    "StreamSession",
    "onetime_stream",
    "open_stream",
    "read_query",
    "terminate_statement",
]
