"""Git-backed deploy provider: clone or update a checkout pinned to a ref."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from pathlib import Path

from ..errors import DeploymentError
from .base import DeployResult, DeployStage, DeployTarget, run_post_deploy

logger = logging.getLogger(__name__)

_COMMIT_RE = re.compile(r"^[0-9a-f]{7,40}$")


def is_commit_id(ref: str) -> bool:
    return bool(_COMMIT_RE.match(ref))


class GitDeployProvider:
    """Materialize ``target.remote`` at ``target.ref`` inside ``target.target_dir``.

    A fresh directory gets a shallow clone. An existing checkout is fetched and
    force-checked-out at the ref (detached), so local edits never block a
    deploy. The resolved ``HEAD`` is reported as the deployed commit.
    """

    id = "git"
    name = "Git checkout"

    def __init__(self, timeout: int | None = 300, git: str = "git"):
        self.timeout = timeout
        self.git = git

    def _git(self, stage: DeployStage, *args: str, cwd: Path | None = None) -> str:
        cmd = [self.git, *args]
        logger.debug("running %s", " ".join(cmd))
        # never wait on a credential prompt
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            res = subprocess.run(
                cmd, cwd=str(cwd) if cwd else None, env=env,
                capture_output=True, text=True, timeout=self.timeout,
            )
        except FileNotFoundError:
            raise DeploymentError(stage, "git executable not found", self.git, provider=self.id) from None
        except subprocess.TimeoutExpired:
            raise DeploymentError(stage, f"git {args[0]} timed out after {self.timeout}s",
                                  provider=self.id) from None
        out = ((res.stdout or "") + (res.stderr or "")).strip()
        if res.returncode != 0:
            raise DeploymentError(stage, f"git {args[0]} exited with status {res.returncode}",
                                  out[-2000:], provider=self.id)
        return out

    def _head(self, path: Path) -> str:
        """Current commit of ``path``, or empty string when there is none."""
        try:
            return self._git(DeployStage.CHECKOUT, "rev-parse", "HEAD", cwd=path).splitlines()[-1]
        except (DeploymentError, IndexError):
            return ""

    def _is_checkout(self, path: Path) -> bool:
        if not (path / ".git").exists():
            return False
        try:
            top = self._git(DeployStage.FETCH, "rev-parse", "--show-toplevel", cwd=path)
        except DeploymentError:
            return False
        return Path(top.splitlines()[-1]).resolve() == path.resolve()

    def _is_shallow(self, path: Path) -> bool:
        out = self._git(DeployStage.FETCH, "rev-parse", "--is-shallow-repository", cwd=path)
        return out.splitlines()[-1:] == ["true"]

    def _update(self, target: DeployTarget, dest: Path) -> list[str]:
        out = [self._git(DeployStage.FETCH, "remote", "set-url", "origin", target.remote, cwd=dest)]
        if is_commit_id(target.ref):
            # abbreviated ids cannot be fetched by name: bring in all branches with full history
            fetch = ["fetch", "--prune", "--tags"]
            if self._is_shallow(dest):
                fetch.append("--unshallow")
            out.append(self._git(DeployStage.FETCH, *fetch, "origin", "--",
                                 "+refs/heads/*:refs/remotes/origin/*", cwd=dest))
            rev = target.ref
        else:
            out.append(self._git(DeployStage.FETCH, "fetch", "--prune", "origin", "--", target.ref, cwd=dest))
            rev = "FETCH_HEAD"
        out.append(self._git(DeployStage.CHECKOUT, "checkout", "--force", "--detach", rev, cwd=dest))
        return out

    def _clone(self, target: DeployTarget, dest: Path) -> list[str]:
        if is_commit_id(target.ref):
            # arbitrary commits are not reachable through a shallow --branch clone
            return [
                self._git(DeployStage.FETCH, "clone", "--no-checkout", "--", target.remote, str(dest)),
                self._git(DeployStage.CHECKOUT, "checkout", "--force", "--detach", target.ref, cwd=dest),
            ]
        return [self._git(DeployStage.FETCH, "clone", "--depth", "1", "--branch", target.ref,
                          "--", target.remote, str(dest))]

    def deploy(self, target: DeployTarget) -> DeployResult:
        started = time.monotonic()
        for key in ("remote", "ref"):
            value = getattr(target, key)
            if not value or value.startswith("-"):
                raise DeploymentError(DeployStage.FETCH, f"invalid {key}", value, provider=self.id)
        dest = target.target_dir
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DeploymentError(DeployStage.FETCH, f"cannot create {dest}", str(e), provider=self.id) from e

        if self._is_checkout(dest):
            previous = self._head(dest)
            logger.info("updating %s to %s (was %s)", dest, target.ref, previous[:12] or "-")
            output = self._update(target, dest)
        else:
            previous = ""
            logger.info("cloning %s@%s into %s", target.remote, target.ref, dest)
            output = self._clone(target, dest)

        commit = self._git(DeployStage.CHECKOUT, "rev-parse", "HEAD", cwd=dest).splitlines()[-1]

        if target.post_deploy:
            logger.info("running post-deploy in %s", dest)
            output.append(run_post_deploy(target, self.id, timeout=self.timeout))

        return DeployResult(
            provider=self.id,
            target_dir=dest,
            ref=target.ref,
            commit=commit,
            previous=previous,
            output="\n".join(o for o in output if o),
            duration=time.monotonic() - started,
        )
