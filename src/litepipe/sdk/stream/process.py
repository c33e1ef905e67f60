"""
sqlite3 subprocess supervision.

This module launches the sqlite3 shell with a fixed set of flags, pumps its
output into a single per-process buffer and exposes send/terminate
primitives. No parsing happens here: output is appended as it arrives and an
``asyncio.Event`` is set so waiters can re-inspect the buffer.
"""

import asyncio
import codecs
import contextlib
import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from .errors import ConfigurationError, ProcessTerminated, ProgramNotFound
from .models import StreamConfigModel, StreamFlags

logger = logging.getLogger(__name__)


def build_command(
    config: StreamConfigModel,
    database: str,
    flags: StreamFlags,
    init_file: Path | str,
    null_sentinel: str,
) -> list[str]:
    """Build the argv used to launch sqlite3.

    Raises:
        ConfigurationError: If a pty relay is required but not available
    """
    command = [
        config.program,
        "-interactive" if flags.interactive else "-batch",
        "-init",
        str(init_file),
        "-csv",
        "-nullvalue",
        null_sentinel,
        "-header" if flags.header else "-noheader",
    ]
    if flags.readonly:
        command.append("-readonly")
    command.extend(flags.extra_args)
    command.append(database)

    if config.use_pty:
        # Pty echo would duplicate every statement, so only a relay that hides it is usable
        if not config.pty_relay:
            raise ConfigurationError("use_pty is set but no pty_relay program is configured")
        if shutil.which(config.pty_relay) is None:
            raise ConfigurationError(f"pty relay program not found: {config.pty_relay}")
        command.insert(0, config.pty_relay)
    return command


def launch_environment(inputrc: Path | str | None = None) -> dict[str, str]:
    """Build the child's environment.

    History goes to the null device. Readline, when the shell is linked with
    it, gets a wide dumb terminal so it never wraps or emits control sequences.
    """
    env = dict(os.environ)
    env.setdefault("SQLITE_HISTORY", os.devnull)
    env["TERM"] = "dumb"
    env["COLUMNS"] = "32767"
    if inputrc is not None:
        env["INPUTRC"] = str(inputrc)
    return env


class ProcessSupervisor:
    """Owns one sqlite3 child process and its output buffer."""

    def __init__(self, process: asyncio.subprocess.Process, command: list[str], read_size: int = 65536):
        self.process = process
        self.command = command
        self.read_size = read_size
        self.output_event = asyncio.Event()
        # Called after every appended chunk; AsyncReader parses rows from here
        self.output_filter: Callable[[], None] | None = None
        self._buffer = ""
        self._eof = False
        self._pump_task = asyncio.create_task(self._pump())

    @classmethod
    async def launch(
        cls,
        config: StreamConfigModel,
        database: str,
        flags: StreamFlags,
        init_file: Path | str,
        null_sentinel: str,
        inputrc: Path | str | None = None,
    ) -> "ProcessSupervisor":
        """Start sqlite3 on ``database`` with pipes for stdin and merged stdout/stderr.

        Raises:
            ProgramNotFound: If the program is missing or not executable
            ConfigurationError: If a required pty relay is not available
        """
        if shutil.which(config.program) is None:
            raise ProgramNotFound(config.program)
        command = build_command(config, database, flags, init_file, null_sentinel)

        env = launch_environment(inputrc)

        logger.debug(f"Launching sqlite3: {command}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=env,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ProgramNotFound(config.program, str(e)) from e
        logger.info(f"Started sqlite3 (pid {process.pid}) on {database}")
        return cls(process, command, read_size=config.read_size)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def running(self) -> bool:
        return not self._eof and self.process.returncode is None

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    def consume(self, count: int) -> str:
        """Remove and return the first ``count`` characters of the buffer."""
        taken = self._buffer[:count]
        self._buffer = self._buffer[count:]
        return taken

    def take(self) -> str:
        """Remove and return the whole buffer."""
        return self.consume(len(self._buffer))

    def clear(self) -> None:
        self._buffer = ""

    def _append(self, text: str) -> None:
        self._buffer += text
        if self.output_filter is not None:
            self.output_filter()
        self.output_event.set()

    async def _pump(self) -> None:
        assert self.process.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                chunk = await self.process.stdout.read(self.read_size)
                if not chunk:
                    break
                self._append(decoder.decode(chunk))
            tail = decoder.decode(b"", final=True)
            if tail:
                self._append(tail)
        finally:
            self._eof = True
            self.output_event.set()
            logger.debug(f"sqlite3 (pid {self.pid}) closed its output")

    async def send(self, text: str) -> None:
        """Write ``text`` to the tool's stdin.

        Raises:
            ProcessTerminated: If the process is gone or its stdin is closed
        """
        stdin = self.process.stdin
        if stdin is None or stdin.is_closing() or self.process.returncode is not None:
            raise ProcessTerminated(self.process.returncode, self._buffer)
        logger.debug(f"sqlite3 (pid {self.pid}) <- {text!r}")
        try:
            stdin.write(text.encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ProcessTerminated(self.process.returncode, self._buffer) from e

    async def close_stdin(self) -> None:
        stdin = self.process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
            with contextlib.suppress(BrokenPipeError, ConnectionResetError):
                await stdin.wait_closed()

    async def wait_for_output(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for new output or EOF.

        Returns:
            True if something arrived, False on timeout
        """
        self.output_event.clear()
        try:
            await asyncio.wait_for(self.output_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_exit(self, timeout: float | None = None) -> int:
        """Wait for the process to exit and its output to be fully pumped.

        Raises:
            asyncio.TimeoutError: If the process is still alive after ``timeout``
        """
        returncode = await asyncio.wait_for(self.process.wait(), timeout)
        await self._pump_task
        return returncode

    async def terminate(self) -> int:
        """Kill the process and wait for it to be reaped."""
        if self.process.returncode is None:
            logger.info(f"Killing sqlite3 (pid {self.pid})")
            with contextlib.suppress(ProcessLookupError):
                self.process.kill()
        return await self.wait_exit()
