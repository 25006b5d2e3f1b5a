"""
Run the installer script for a host platform.

The child process inherits stdin/stdout/stderr so the user sees installer
output live; nothing is captured or parsed. The only thing observed is the
exit status. There is no timeout and no retry: callers wrap ``install`` in
their own time limit or retry loop if they need one. Interrupting the wait
(Ctrl-C, task cancellation) terminates the child before the exception
propagates.
"""
from __future__ import annotations

import asyncio
import logging
import subprocess
from pathlib import Path
from typing import Callable

from ..config import load_settings
from ..errors import InstallationFailedError, UnsupportedPlatformError
from .base import InstallResult, Platform, detect_platform

logger = logging.getLogger(__name__)

TERMINATE_GRACE = 10.0

InstallerCommand = Callable[[], list[str]]


def _linux_installer() -> list[str]:
    return ["bash", "scripts/install.sh"]


def _windows_installer() -> list[str]:
    return ["powershell", "-ExecutionPolicy", "Bypass", "-File", "install.ps1"]


# New platforms are added here, never by branching at call sites.
INSTALLERS: dict[Platform, InstallerCommand] = {
    Platform.UBUNTU: _linux_installer,
    Platform.DEBIAN: _linux_installer,
    Platform.RHEL: _linux_installer,
    Platform.WINDOWS: _windows_installer,
}


def resolve_platform(platform: Platform | str | None) -> Platform:
    """Map ``platform`` to a supported Platform; ``None``/``"auto"`` detects the host."""
    if platform is None or platform == "auto":
        platform = detect_platform()
        logger.debug("detected platform %s", platform.value)
    try:
        resolved = Platform(platform)
    except ValueError:
        raise UnsupportedPlatformError(platform) from None
    if resolved not in INSTALLERS:
        raise UnsupportedPlatformError(resolved)
    return resolved


def _prepare(platform, root) -> tuple[Platform, list[str], Path]:
    resolved = resolve_platform(platform)
    cmd = INSTALLERS[resolved]()
    cwd = Path(root) if root is not None else load_settings().root
    return resolved, cmd, cwd


def _spawn_failure_code(e: OSError) -> int:
    # shell conventions: 127 = command not found, 126 = not executable
    return 126 if isinstance(e, PermissionError) else 127


def _finish(result: InstallResult, check: bool) -> InstallResult:
    if result.ok:
        logger.info("installer for %s succeeded", result.platform.value)
        return result
    logger.error("installer for %s exited with status %d", result.platform.value, result.returncode)
    if check:
        raise InstallationFailedError(result.returncode, result)
    return result


def _terminate(proc: subprocess.Popen) -> None:
    if proc.poll() is not None:
        return
    logger.warning("terminating installer (pid %d)", proc.pid)
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def install(platform: Platform | str | None = None, *, root: str | Path | None = None,
            check: bool = True) -> InstallResult:
    """Run the installer for ``platform`` in ``root`` and wait for it to exit.

    Raises UnsupportedPlatformError (nothing spawned) for unknown platforms and,
    when ``check`` is true, InstallationFailedError for a non-zero exit.
    """
    resolved, cmd, cwd = _prepare(platform, root)
    logger.info("running %s installer: %s (cwd=%s)", resolved.value, " ".join(cmd), cwd)
    try:
        proc = subprocess.Popen(cmd, cwd=str(cwd))
    except OSError as e:
        logger.error("cannot start installer %s: %s", cmd[0], e)
        return _finish(InstallResult(resolved, tuple(cmd), _spawn_failure_code(e)), check)
    try:
        returncode = proc.wait()
    except BaseException:
        _terminate(proc)
        raise
    return _finish(InstallResult(resolved, tuple(cmd), returncode), check)


async def _terminate_async(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    logger.warning("terminating installer (pid %d)", proc.pid)
    try:
        proc.terminate()
        await asyncio.wait_for(proc.wait(), TERMINATE_GRACE)
    except ProcessLookupError:
        return
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()


async def install_async(platform: Platform | str | None = None, *, root: str | Path | None = None,
                        check: bool = True) -> InstallResult:
    """Awaitable :func:`install`; cancelling the task terminates the installer."""
    resolved, cmd, cwd = _prepare(platform, root)
    logger.info("running %s installer: %s (cwd=%s)", resolved.value, " ".join(cmd), cwd)
    try:
        proc = await asyncio.create_subprocess_exec(*cmd, cwd=str(cwd))
    except OSError as e:
        logger.error("cannot start installer %s: %s", cmd[0], e)
        return _finish(InstallResult(resolved, tuple(cmd), _spawn_failure_code(e)), check)
    try:
        returncode = await proc.wait()
    except asyncio.CancelledError:
        await asyncio.shield(_terminate_async(proc))
        raise
    return _finish(InstallResult(resolved, tuple(cmd), returncode), check)
