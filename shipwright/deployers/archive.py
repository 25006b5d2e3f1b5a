"""Archive deploy provider: unpack a tar/zip release next to the target and swap it in."""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
import tempfile
import time
import zipfile
from pathlib import Path
from urllib.parse import unquote, urlparse

from ..errors import DeploymentError
from .base import DeployResult, DeployStage, DeployTarget, run_post_deploy

logger = logging.getLogger(__name__)

RELEASE_MARKER = ".shipwright-release"


def _archive_path(remote: str) -> Path:
    if remote.startswith("file://"):
        return Path(unquote(urlparse(remote).path))
    return Path(remote).expanduser()


def _unpack(archive: Path, dest: Path) -> None:
    if zipfile.is_zipfile(archive):
        shutil.unpack_archive(str(archive), str(dest), "zip")
    elif tarfile.is_tarfile(archive):
        # "data" refuses absolute names, ".." and links pointing outside dest
        with tarfile.open(archive) as tf:
            tf.extractall(dest, filter="data")
    else:
        raise ValueError(f"unsupported archive format: {archive.name}")


def _is_foreign(dest: Path) -> bool:
    """True when ``dest`` holds something that no earlier archive deploy put there."""
    if not dest.exists() or (dest / RELEASE_MARKER).is_file():
        return False
    return not dest.is_dir() or any(dest.iterdir())


def _sha256(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1 << 16), b""):
            h.update(chunk)
    return h.hexdigest()


class ArchiveDeployProvider:
    """Deploy a local release archive; the archive's sha256 is the deployed "commit".

    ``target.ref`` is informational only (e.g. a version label).
    """

    id = "archive"
    name = "Release archive"

    def __init__(self, timeout: int | None = 300):
        self.timeout = timeout

    def deploy(self, target: DeployTarget) -> DeployResult:
        started = time.monotonic()
        dest = target.target_dir
        archive = _archive_path(target.remote)
        if not archive.is_file():
            raise DeploymentError(DeployStage.FETCH, "archive not found", str(archive), provider=self.id)
        try:
            digest = _sha256(archive)
        except OSError as e:
            raise DeploymentError(DeployStage.FETCH, "cannot read archive", str(e), provider=self.id) from e

        if _is_foreign(dest):
            raise DeploymentError(DeployStage.CHECKOUT, "target exists and was not deployed from an archive",
                                  str(dest), provider=self.id)
        marker = dest / RELEASE_MARKER
        previous = marker.read_text().strip() if marker.is_file() else ""

        dest.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}.", suffix=".staging", dir=dest.parent))
        try:
            logger.info("unpacking %s into %s", archive.name, dest)
            _unpack(archive, staging)
            (staging / RELEASE_MARKER).write_text(digest + "\n")
            self._swap(staging, dest)
        except (OSError, ValueError, tarfile.TarError) as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise DeploymentError(DeployStage.CHECKOUT, "cannot unpack archive", str(e), provider=self.id) from e

        output = ""
        if target.post_deploy:
            output = run_post_deploy(target, self.id, timeout=self.timeout)

        return DeployResult(
            provider=self.id,
            target_dir=dest,
            ref=target.ref,
            commit=digest,
            previous=previous,
            output=output,
            duration=time.monotonic() - started,
        )

    @staticmethod
    def _swap(staging: Path, dest: Path) -> None:
        old = None
        if dest.exists():
            old = dest.with_name(f".{dest.name}.{staging.name.split('.')[-2]}.old")
            dest.rename(old)
        try:
            staging.rename(dest)
        except OSError:
            if old is not None:
                old.rename(dest)
            raise
        if old is not None:
            shutil.rmtree(old, ignore_errors=True)
