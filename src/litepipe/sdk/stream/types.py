"""Value types shared by the stream components.

SQL NULL is represented by ``None``. Rows are tuples, so ``None`` in place of
a whole row is free to mean "no more rows" for readers and callbacks.
"""

from collections.abc import Callable
from enum import Enum
from typing import NamedTuple, Union

Scalar = Union[str, int, float, None]
Row = tuple[Scalar, ...]

# Invoked with each parsed row, then once with None at end of stream.
RowCallback = Callable[[Union[Row, None]], None]


class SessionState(str, Enum):
    """Where a session stands relative to the tool's prompt."""

    AWAITING_PROMPT = "awaitingPrompt"
    READY = "ready"
    ERRORED = "errored"
    TERMINATED = "terminated"


class SyncResult(NamedTuple):
    state: SessionState
    message: str | None = None
