"""
Lazy cursor over the results of one statement.

Rows are pulled from the session's buffer only when asked for and cached in
the reader, so earlier positions can be revisited. The shell cannot produce
results out of order, so seeking past what has been read replays forward.
"""

import logging
from pathlib import Path
from typing import Any

from .errors import SessionClosed, StreamError
from .session import StreamSession, terminate_statement
from .types import Row

logger = logging.getLogger(__name__)


class LazyReader:
    """Pull-style cursor bound to one session and one statement.

    The reader closes its session once the results are exhausted.

    Example:
        >>> reader = await LazyReader.open(session, "SELECT * FROM t ORDER BY a")
        >>> await reader.read()
        (1, 'x')
        >>> await reader.seek(0)
        0
        >>> await reader.peek()
        (1, 'x')
    """

    def __init__(self, session: StreamSession, sql: str):
        self.session = session
        self.sql = sql
        self.header: list[str] | None = None
        self.position = 0
        self._cache: list[Row] = []
        self._exhausted = False

    @classmethod
    async def open(cls, session: StreamSession, sql: str) -> "LazyReader":
        """Start ``sql`` on ``session`` without waiting for its results."""
        await session.set_header(True)
        await session.negotiate_null_sentinel(sql)
        await session.send(terminate_statement(sql))
        return cls(session, sql)

    async def __aenter__(self) -> "LazyReader":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __aiter__(self) -> "LazyReader":
        return self

    async def __anext__(self) -> Row:
        row = await self.read()
        if row is None:
            raise StopAsyncIteration
        return row

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def cached_rows(self) -> int:
        return len(self._cache)

    async def _pull(self) -> Row | None:
        if self.session.closed:
            raise SessionClosed("Reader session is closed")
        try:
            if self.header is None:
                first = await self.session.next_row()
                if first is None:
                    await self._finish()
                    return None
                self.header = [str(name) for name in first]
            row = await self.session.next_row()
        except StreamError:
            self._exhausted = True
            await self.session.close()
            raise
        if row is None:
            await self._finish()
        return row

    async def _finish(self) -> None:
        self._exhausted = True
        logger.debug(f"Reader exhausted after {len(self._cache)} rows")
        await self.session.close()

    async def read(self) -> Row | None:
        """Return the next row, or None at end of results."""
        if self.position < len(self._cache):
            row = self._cache[self.position]
            self.position += 1
            return row
        if self._exhausted:
            return None
        row = await self._pull()
        if row is None:
            return None
        self._cache.append(row)
        self.position += 1
        return row

    async def seek(self, position: int) -> int:
        """Move the cursor to ``position`` and return where it actually landed.

        The result is smaller than ``position`` when the results end first.
        """
        if position < 0:
            raise ValueError("position must not be negative")
        if position <= len(self._cache):
            self.position = position
            return position
        self.position = len(self._cache)
        while self.position < position:
            if await self.read() is None:
                break
        return self.position

    async def peek(self, position: int | None = None) -> Row | None:
        """Return the row at ``position`` (default: next) without moving the cursor."""
        saved = self.position
        try:
            if position is not None:
                await self.seek(position)
            return await self.read()
        finally:
            self.position = saved

    async def close(self) -> None:
        """Stop reading; the underlying session is closed."""
        self._exhausted = True
        await self.session.close()


async def open_reader(
    database: str | Path | None, sql: str, **kwargs: Any
) -> LazyReader:
    """Open a dedicated session for ``sql`` and return a reader over it."""
    session = await StreamSession.open(database, **kwargs)
    try:
        return await LazyReader.open(session, sql)
    except BaseException:
        await session.close()
        raise
