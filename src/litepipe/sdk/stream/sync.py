"""
Prompt synchronization for interactive sqlite3 sessions.

The shell has no end-of-response marker. It prints ``sqlite> `` when it is
ready for the next statement (or a continuation prompt such as ``   ...> ``
while a statement is still open), and an ``Error: ...`` style line before
that prompt when a statement is rejected. This module recognizes those
patterns on the buffered tail and offers a wait primitive that yields to the
event loop between checks.
"""

import asyncio
import logging
import re
from typing import Protocol

from .errors import StreamTimeout
from .types import SessionState, SyncResult

logger = logging.getLogger(__name__)

PROMPT = "sqlite> "

# Newer shells replace the leading blanks with open-construct hints, e.g. "(x1...> "
CONTINUATION_PROMPT_RE = re.compile(r"[^\n]{0,5}?\.\.\.> ")
PROMPT_TAIL_RE = re.compile(r"(?:\A|\n)sqlite> \Z")
ERROR_LINE_RE = re.compile(
    r"^(?:Error|Parse error|Runtime error)(?: near line \d+)?: ?(?:near line \d+: )?(?P<message>[^\n]*?)\r?$",
    re.MULTILINE,
)


class SynchronizedSession(Protocol):
    """What the synchronizer needs from a session."""

    error_message: str | None

    @property
    def buffer(self) -> str: ...

    @property
    def running(self) -> bool: ...

    @property
    def awaiting_more_input(self) -> bool: ...

    @property
    def output_event(self) -> asyncio.Event: ...

    def skip_input_echo(self) -> None: ...


def find_error(text: str) -> str | None:
    """Return the message of the first error line in ``text``, if any."""
    match = ERROR_LINE_RE.search(text)
    if match is None:
        return None
    return match.group("message")


def ends_with_prompt(text: str) -> bool:
    return PROMPT_TAIL_RE.search(text) is not None


def strip_prompt(text: str) -> str:
    """Remove a trailing primary prompt from ``text``."""
    if text.endswith(PROMPT):
        return text[: -len(PROMPT)]
    return text


def classify(
    buffer: str, running: bool, awaiting_more_input: bool = False
) -> SyncResult:
    """Derive the session state from the buffered output.

    An error line only settles the state once the prompt that follows it has
    arrived (or the process is gone), so the channel stays aligned for the
    next statement.
    """
    settled = running and (ends_with_prompt(buffer) or awaiting_more_input)
    message = find_error(buffer)
    if message is not None and (settled or not running):
        return SyncResult(SessionState.ERRORED, message)
    if settled:
        return SyncResult(SessionState.READY)
    if not running:
        return SyncResult(SessionState.TERMINATED)
    return SyncResult(SessionState.AWAITING_PROMPT)


class PromptSynchronizer:
    """Wait until a session's buffer shows a prompt, an error or process exit.

    The wait is driven by the output-arrival event of the session's
    supervisor; the timeout on each wait grows from ``poll_interval`` up to
    ``max_poll_interval`` while nothing arrives, so a silent process still
    gets re-checked.
    """

    def __init__(self, poll_interval: float = 0.005, max_poll_interval: float = 0.1):
        self.poll_interval = poll_interval
        self.max_poll_interval = max_poll_interval

    def inspect(self, session: SynchronizedSession) -> SyncResult:
        session.skip_input_echo()
        result = classify(session.buffer, session.running, session.awaiting_more_input)
        if session.error_message is None:
            # First sighting only: later checks reuse the recorded message
            message = result.message or find_error(session.buffer)
            if message is not None:
                logger.debug(f"sqlite3 reported an error: {message}")
                session.error_message = message
        if result.state is SessionState.ERRORED:
            return SyncResult(SessionState.ERRORED, session.error_message)
        return result

    async def wait_until_ready(
        self, session: SynchronizedSession, timeout: float | None = None
    ) -> SyncResult:
        """Block cooperatively until the session leaves ``AWAITING_PROMPT``.

        Raises:
            StreamTimeout: If ``timeout`` seconds pass without a settled state
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        delay = self.poll_interval
        event = session.output_event
        while True:
            event.clear()
            result = self.inspect(session)
            if result.state is not SessionState.AWAITING_PROMPT:
                return result
            wait = delay
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise StreamTimeout(f"No sqlite3 prompt within {timeout} seconds")
                wait = min(wait, remaining)
            try:
                await asyncio.wait_for(event.wait(), wait)
            except asyncio.TimeoutError:
                delay = min(delay * 2, self.max_poll_interval)
            else:
                delay = self.poll_interval
