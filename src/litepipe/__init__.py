"""litepipe - drive the sqlite3 shell from Python over a text pipe."""

from litepipe.sdk.core.version import PACKAGE_VERSION as __version__

__all__ = ["__version__"]
