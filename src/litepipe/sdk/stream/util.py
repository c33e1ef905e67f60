"""Helpers around the sqlite3 program and database files."""

import hashlib
import logging
import re
import shutil
import subprocess
import time
from pathlib import Path

from .errors import ConfigurationError, ProgramNotFound

logger = logging.getLogger(__name__)

SQLITE_MAGIC = b"SQLite format 3\x00"

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


def make_null_sentinel(seed: str = "") -> str:
    """Return a short token that stands in for SQL NULL in shell output.

    The token mixes the current time with ``seed`` (usually the query text),
    so it is unlikely to collide with real data.
    """
    digest = hashlib.md5(f"{time.time()}:{seed}".encode()).hexdigest()
    return f"NULL-{digest[:10]}"


def expand_database_path(path: str | Path) -> str:
    """Expand ``~`` and make ``path`` absolute for the current platform."""
    return str(Path(path).expanduser().resolve())


def is_sqlite_database(path: str | Path) -> bool:
    """Check whether ``path`` starts with the SQLite 3 file header."""
    try:
        with open(Path(path).expanduser(), "rb") as f:
            return f.read(len(SQLITE_MAGIC)) == SQLITE_MAGIC
    except OSError:
        return False


def installed_version(program: str = "sqlite3") -> tuple[int, int, int]:
    """Return the version of the installed sqlite3 program.

    Raises:
        ProgramNotFound: If the program cannot be run
        ConfigurationError: If the version string cannot be parsed
    """
    if shutil.which(program) is None:
        raise ProgramNotFound(program)
    try:
        result = subprocess.run(
            [program, "-version"], capture_output=True, text=True, check=True, timeout=10
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise ProgramNotFound(program, str(e)) from e

    match = _VERSION_RE.match(result.stdout.strip())
    if not match:
        raise ConfigurationError(f"Unrecognized sqlite3 version output: {result.stdout.strip()!r}")
    major, minor, patch = (int(part) for part in match.groups())
    logger.debug(f"{program} version {major}.{minor}.{patch}")
    return major, minor, patch


def check_version(minimum: tuple[int, ...], program: str = "sqlite3") -> tuple[int, int, int]:
    """Ensure the installed program is at least ``minimum``.

    Raises:
        ConfigurationError: If the installed version is older
    """
    version = installed_version(program)
    if version < tuple(minimum):
        wanted = ".".join(str(part) for part in minimum)
        found = ".".join(str(part) for part in version)
        raise ConfigurationError(f"{program} {wanted} or later is required, found {found}")
    return version
