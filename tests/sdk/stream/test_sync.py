"""Tests for prompt and error recognition."""

import asyncio

import pytest

from litepipe.sdk.stream import PromptSynchronizer, SessionState, StreamTimeout
from litepipe.sdk.stream.sync import classify, ends_with_prompt, find_error, strip_prompt


class FakeSession:
    """Buffer holder standing in for a live session."""

    def __init__(self, lines_sent: int = 1):
        self.error_message = None
        self.buffer = ""
        self.running = True
        self.awaiting_more_input = False
        self.output_event = asyncio.Event()
        self.lines_sent = lines_sent
        self.continuations_seen = 0

    def skip_input_echo(self):
        while self.continuations_seen < self.lines_sent and self.buffer.startswith("   ...> "):
            self.buffer = self.buffer[len("   ...> ") :]
            self.continuations_seen += 1

    def feed(self, text: str):
        self.buffer += text
        self.output_event.set()

    def exit(self):
        self.running = False
        self.output_event.set()


class TestPatterns:
    """Prompt and error line helpers."""

    def test_prompt_at_line_start(self):
        assert ends_with_prompt("sqlite> ")
        assert ends_with_prompt("1,x\nsqlite> ")
        assert not ends_with_prompt("1,x\n")
        assert not ends_with_prompt("text sqlite> ")

    def test_strip_prompt(self):
        assert strip_prompt("hello\nsqlite> ") == "hello\n"
        assert strip_prompt("hello\n") == "hello\n"

    @pytest.mark.parametrize(
        "text, message",
        [
            ("Error: no such table: t\n", "no such table: t"),
            ("Error: near line 1: no such table: t\n", "no such table: t"),
            ("Error: near line 3: no such column: z\r\n", "no such column: z"),
            (
                'Parse error: near "SELEC": syntax error\n  SELEC 1;\n  ^--- error here\n',
                'near "SELEC": syntax error',
            ),
            ("Runtime error: UNIQUE constraint failed: t.a (19)\n", "UNIQUE constraint failed: t.a (19)"),
            ("1,x\nError: unknown command or invalid arguments:  \"bogus\"\n", 'unknown command or invalid arguments:  "bogus"'),
        ],
    )
    def test_find_error(self, text, message):
        assert find_error(text) == message

    def test_no_error(self):
        assert find_error("1,Error: inside a field\n") is None
        assert find_error("") is None


class TestClassify:
    """State derivation from a buffer snapshot."""

    def test_ready(self):
        assert classify("sqlite> ", running=True).state is SessionState.READY
        assert classify("1,x\nsqlite> ", running=True).state is SessionState.READY

    def test_awaiting(self):
        assert classify("1,x\n", running=True).state is SessionState.AWAITING_PROMPT
        assert classify("", running=True).state is SessionState.AWAITING_PROMPT

    def test_error_waits_for_prompt(self):
        result = classify("Error: no such table: t\n", running=True)
        assert result.state is SessionState.AWAITING_PROMPT

        result = classify("Error: no such table: t\nsqlite> ", running=True)
        assert result.state is SessionState.ERRORED
        assert result.message == "no such table: t"

    def test_error_after_exit(self):
        result = classify("Error: no such table: t\n", running=False)
        assert result.state is SessionState.ERRORED

    def test_terminated(self):
        assert classify("", running=False).state is SessionState.TERMINATED
        assert classify("1,x\n", running=False).state is SessionState.TERMINATED

    def test_ready_by_continuation(self):
        result = classify("", running=True, awaiting_more_input=True)
        assert result.state is SessionState.READY


class TestPromptSynchronizer:
    """Cooperative waiting on a session buffer."""

    @pytest.mark.asyncio
    async def test_waits_for_late_prompt(self):
        session = FakeSession()
        synchronizer = PromptSynchronizer(poll_interval=0.001, max_poll_interval=0.01)

        async def produce():
            await asyncio.sleep(0.02)
            session.feed("1,")
            await asyncio.sleep(0.02)
            session.feed("x\nsqlite")
            await asyncio.sleep(0.02)
            session.feed("> ")

        producer = asyncio.create_task(produce())
        result = await synchronizer.wait_until_ready(session, timeout=5)
        await producer
        assert result.state is SessionState.READY
        assert session.buffer == "1,x\nsqlite> "

    @pytest.mark.asyncio
    async def test_skips_continuation_prompts(self):
        session = FakeSession(lines_sent=2)
        session.feed("   ...> 1,2\nsqlite> ")
        result = await PromptSynchronizer().wait_until_ready(session, timeout=1)
        assert result.state is SessionState.READY
        assert session.buffer == "1,2\nsqlite> "
        assert session.continuations_seen == 1

    @pytest.mark.asyncio
    async def test_error_recorded_once(self):
        session = FakeSession()
        synchronizer = PromptSynchronizer()
        session.feed("Error: first problem\n")
        assert synchronizer.inspect(session).state is SessionState.AWAITING_PROMPT
        assert session.error_message == "first problem"

        session.feed("Error: second problem\nsqlite> ")
        result = await synchronizer.wait_until_ready(session, timeout=1)
        assert result.state is SessionState.ERRORED
        assert result.message == "first problem"

    @pytest.mark.asyncio
    async def test_process_exit(self):
        session = FakeSession()
        synchronizer = PromptSynchronizer(poll_interval=0.001)
        asyncio.get_running_loop().call_later(0.02, session.exit)
        result = await synchronizer.wait_until_ready(session, timeout=5)
        assert result.state is SessionState.TERMINATED

    @pytest.mark.asyncio
    async def test_timeout(self):
        session = FakeSession()
        synchronizer = PromptSynchronizer(poll_interval=0.001, max_poll_interval=0.005)
        with pytest.raises(StreamTimeout):
            await synchronizer.wait_until_ready(session, timeout=0.05)
