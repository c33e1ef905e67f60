"""Transaction bracketing on top of a stream session."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

from .errors import StreamError
from .session import StreamSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def transaction(session: StreamSession) -> AsyncIterator[StreamSession]:
    """Wrap the block in BEGIN/COMMIT, rolling back if it raises.

    The original exception is always re-raised; a failing ROLLBACK is logged
    and does not replace it.
    """
    await session.execute("BEGIN")
    try:
        yield session
    except BaseException:
        if session.alive:
            try:
                await session.execute("ROLLBACK")
                logger.info("Transaction rolled back")
            except StreamError as e:
                logger.warning(f"ROLLBACK failed: {e}")
        raise
    await session.execute("COMMIT")


async def run_transaction(
    database: str | Path | None,
    body: Callable[[StreamSession], Awaitable[T]],
    **kwargs: Any,
) -> T:
    """Run ``body`` inside a transaction on a session of its own.

    The session is always closed afterwards. Closing a session in the middle
    of a transaction rolls it back on the tool's side, but an explicit
    ROLLBACK is sent first whenever ``body`` raises.

    Example:
        >>> async def body(session):
        ...     await session.execute("INSERT INTO t VALUES (3, 'z')")
        ...     return "done"
        >>> await run_transaction("app.db", body)
        'done'
    """
    session = await StreamSession.open(database, **kwargs)
    try:
        async with transaction(session):
            return await body(session)
    finally:
        await session.close()
