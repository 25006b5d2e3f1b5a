"""Platform installer dispatch."""

from .base import InstallResult, Platform, detect_platform
from .dispatcher import INSTALLERS, install, install_async, resolve_platform

__all__ = [
    "Platform",
    "InstallResult",
    "INSTALLERS",
    "detect_platform",
    "install",
    "install_async",
    "resolve_platform",
]
