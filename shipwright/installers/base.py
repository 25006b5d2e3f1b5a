"""Platform identifiers, install outcomes and host platform detection."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

OS_RELEASE = Path("/etc/os-release")


class Platform(str, Enum):
    """Host operating system families with a known installer."""

    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    RHEL = "rhel"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class InstallResult:
    """Exit status of one installer run."""

    platform: Platform
    command: tuple[str, ...]
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# order matters: ubuntu's os-release also mentions debian (ID_LIKE)
_OS_PATTERNS = [
    (Platform.UBUNTU, re.compile(r"ubuntu", re.I)),
    (Platform.DEBIAN, re.compile(r"debian", re.I)),
    (Platform.RHEL, re.compile(r"centos|rhel|rocky|alma|fedora", re.I)),
]


def detect_platform(os_release: Path = OS_RELEASE, sys_platform: str | None = None) -> Platform:
    """Guess the host platform from ``sys.platform`` and ``/etc/os-release``."""
    if (sys_platform or sys.platform) == "win32":
        return Platform.WINDOWS
    try:
        text = os_release.read_text()
    except OSError:
        return Platform.UNKNOWN
    for platform, pattern in _OS_PATTERNS:
        if pattern.search(text):
            return platform
    return Platform.UNKNOWN
