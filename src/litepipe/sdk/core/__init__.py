"""litepipe SDK core - package information shared across the SDK."""

from .version import PACKAGE_NAME, PACKAGE_VERSION, get_package_info, version_report

__all__ = ["PACKAGE_NAME", "PACKAGE_VERSION", "get_package_info", "version_report"]
