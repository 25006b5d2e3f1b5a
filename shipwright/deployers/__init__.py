"""Deploy providers: the ``deploy(target)`` contract and its backends."""

from __future__ import annotations

import logging

from ..errors import DeploymentError
from .archive import ArchiveDeployProvider
from .base import (
    DeployProvider,
    DeployResult,
    DeployStage,
    DeployTarget,
    conforms,
)
from .git import GitDeployProvider
from .manifest import load_targets
from .registry import discover_providers, get_provider, list_providers, register_provider

logger = logging.getLogger(__name__)

__all__ = [
    "DeployStage",
    "DeployTarget",
    "DeployResult",
    "DeployProvider",
    "GitDeployProvider",
    "ArchiveDeployProvider",
    "conforms",
    "deploy",
    "discover_providers",
    "get_provider",
    "list_providers",
    "load_targets",
    "register_provider",
]


def deploy(target: DeployTarget, timeout: int | None = None) -> DeployResult:
    """Deploy ``target`` with the provider named by ``target.provider``."""
    provider = get_provider(target.provider, timeout=timeout)
    logger.info("deploy started: %s@%s -> %s", target.remote, target.ref, target.target_dir,
                extra={"provider": target.provider})
    try:
        result = provider.deploy(target)
    except DeploymentError as e:
        logger.error("deploy failed: %s", e, extra={"provider": target.provider, "stage": e.stage})
        raise
    logger.info("deploy completed: %s at %s", target.target_dir, result.commit[:12],
                extra={"provider": target.provider, "commit": result.commit,
                       "previous": result.previous, "duration": round(result.duration, 2)})
    return result
