"""Tests for dropping prompts and echoed input ahead of a statement's output."""

import pytest

from litepipe.sdk.stream import StreamConfigModel, StreamRuntime, StreamSession


class FakeSupervisor:
    def __init__(self):
        self.buffer = ""

    def consume(self, count: int) -> str:
        taken = self.buffer[:count]
        self.buffer = self.buffer[count:]
        return taken


@pytest.fixture
def echo_session():
    supervisor = FakeSupervisor()
    session = StreamSession(supervisor, "app.db", "N", StreamConfigModel(), StreamRuntime())
    return session, supervisor


def prepare(session, text: str):
    # Same bookkeeping as send() without a live process
    session._lines_in_flight = text.count("\n")
    session._continuations_seen = 0
    session._echo_lines = text.split("\n")[:-1]


def test_plain_output_untouched(echo_session):
    session, supervisor = echo_session
    prepare(session, "SELECT 1;\n")
    supervisor.buffer = "1\nsqlite> "
    session.skip_input_echo()
    assert supervisor.buffer == "1\nsqlite> "
    assert session._echo_lines == []


def test_echoed_lines_and_continuations(echo_session):
    session, supervisor = echo_session
    prepare(session, "SELECT\n1;\n")
    supervisor.buffer = "SELECT\n   ...> 1;\n1\nsqlite> "
    session.skip_input_echo()
    assert supervisor.buffer == "1\nsqlite> "


def test_partial_echo_waits(echo_session):
    session, supervisor = echo_session
    prepare(session, "SELECT 'abc';\n")
    supervisor.buffer = "SELECT 'a"
    session.skip_input_echo()
    assert supervisor.buffer == "SELECT 'a"

    supervisor.buffer += "bc';\nabc\nsqlite> "
    session.skip_input_echo()
    assert supervisor.buffer == "abc\nsqlite> "


def test_expanded_tab_echo(echo_session):
    session, supervisor = echo_session
    prepare(session, "SELECT 'a\tb';\n")
    supervisor.buffer = "SELECT 'a       b';\n\"a\tb\"\nsqlite> "
    session.skip_input_echo()
    assert supervisor.buffer == "\"a\tb\"\nsqlite> "


def test_output_matching_later_line_is_kept(echo_session):
    session, supervisor = echo_session
    prepare(session, "SELECT 2;\n")
    supervisor.buffer = "2\nSELECT 2;\nsqlite> "
    session.skip_input_echo()
    assert supervisor.buffer == "2\nSELECT 2;\nsqlite> "


def test_continuations_without_echo(echo_session):
    session, supervisor = echo_session
    prepare(session, "SELECT\n1\n")
    supervisor.buffer = "   ...>    ...> "
    session.skip_input_echo()
    assert supervisor.buffer == ""
    assert session.awaiting_more_input
