"""Deploy provider contract and the value types that flow through it."""

from __future__ import annotations

import inspect
import os
import subprocess
import types
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

from ..errors import DeploymentError


class DeployStage(str, Enum):
    """Stage in which a deploy can fail."""

    FETCH = "fetch"
    CHECKOUT = "checkout"
    APPLY = "apply"


@dataclass(frozen=True)
class DeployTarget:
    """What to deploy (``remote`` at ``ref``) and where (``target_dir``)."""

    remote: str
    target_dir: Path
    ref: str = "main"
    post_deploy: str = ""
    provider: str = "git"
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "target_dir", Path(self.target_dir).expanduser())
        # read-only snapshot; later changes to the caller's dict do not leak in
        object.__setattr__(self, "env", types.MappingProxyType(dict(self.env)))


@dataclass
class DeployResult:
    """Successful deploy: ``commit`` identifies what is now live in ``target_dir``."""

    provider: str
    target_dir: Path
    ref: str
    commit: str
    previous: str = ""
    output: str = ""
    duration: float = 0.0

    @property
    def changed(self) -> bool:
        return self.commit != self.previous

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "target_dir": str(self.target_dir),
            "ref": self.ref,
            "commit": self.commit,
            "previous": self.previous,
            "changed": self.changed,
            "duration": round(self.duration, 2),
        }


@runtime_checkable
class DeployProvider(Protocol):
    """Anything with ``deploy(target) -> DeployResult`` is a provider.

    Implementations raise :class:`DeploymentError` on failure and keep no
    state between calls, so a failed deploy can simply be retried.
    """

    def deploy(self, target: DeployTarget) -> DeployResult: ...


def conforms(obj: object) -> bool:
    """Structural check: ``obj.deploy`` is callable with exactly one positional argument."""
    fn = getattr(obj, "deploy", None)
    if not callable(fn):
        return False
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return False
    required = [
        p for p in sig.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    ]
    return len(required) == 1


def run_post_deploy(target: DeployTarget, provider: str, timeout: int | None = None) -> str:
    """Run ``target.post_deploy`` through the shell inside the target dir. Returns its output."""
    env = {**os.environ, **target.env} if target.env else None
    try:
        res = subprocess.run(
            target.post_deploy,
            shell=True,
            cwd=str(target.target_dir),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise DeploymentError(DeployStage.APPLY, "post-deploy command timed out",
                              target.post_deploy, provider=provider) from None
    out = ((res.stdout or "") + (res.stderr or "")).strip()
    if res.returncode != 0:
        raise DeploymentError(DeployStage.APPLY,
                              f"post-deploy command exited with status {res.returncode}",
                              out[-2000:], provider=provider)
    return out
