"""Error taxonomy for the sqlite3 stream layer.

Every error raised by this package derives from :class:`StreamError`, so a
host can catch the whole family with one ``except`` clause while still
telling a rejected statement apart from a dead subprocess.
"""


class StreamError(Exception):
    """Base class for all stream errors."""


class ProgramNotFound(StreamError):
    """The sqlite3 program is missing or not executable."""

    def __init__(self, program: str, reason: str | None = None):
        message = f"sqlite3 program not found or not executable: {program}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.program = program


class ConfigurationError(StreamError):
    """The environment cannot run the tool as configured (e.g. missing pty relay)."""


class SqlSyntaxError(StreamError):
    """The tool rejected a statement or a dot-command."""

    def __init__(self, message: str, statement: str | None = None):
        super().__init__(message)
        self.message = message
        self.statement = statement


class ProcessTerminated(StreamError):
    """The subprocess exited while a caller was waiting on it."""

    def __init__(self, returncode: int | None = None, output: str = ""):
        super().__init__(f"sqlite3 process terminated (exit code {returncode})")
        self.returncode = returncode
        self.output = output


class StreamTimeout(StreamError):
    """A bounded wait on the subprocess expired."""


class SessionClosed(StreamError):
    """An operation was attempted on a closed session or reader."""
