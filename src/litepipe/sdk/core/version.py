"""Package and sqlite3 program version information."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["PACKAGE_NAME", "PACKAGE_VERSION", "get_package_info", "version_report"]

PACKAGE_NAME = "litepipe"

try:
    PACKAGE_VERSION = version(PACKAGE_NAME)
except PackageNotFoundError:
    PACKAGE_VERSION = "unknown"


def get_package_info() -> tuple[str, str]:
    """Return ``(package_name, package_version)``."""
    return PACKAGE_NAME, PACKAGE_VERSION


def version_report(program: str = "sqlite3") -> dict[str, str]:
    """Describe this package and the sqlite3 program it drives.

    Raises:
        ProgramNotFound: If ``program`` cannot be run
    """
    from litepipe.sdk.stream.util import installed_version

    sqlite_version = ".".join(str(part) for part in installed_version(program))
    return {PACKAGE_NAME: PACKAGE_VERSION, "sqlite3": sqlite_version, "program": program}
