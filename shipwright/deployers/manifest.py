"""Load deploy targets from a ``deploy.yml`` manifest.

Two layouts are accepted::

    targets:
      - remote: https://git.example.com/site.git
        target_dir: /srv/site
        ref: main

    targets:
      site:
        remote: ${SITE_REPO}
        target_dir: /srv/site

``${VAR}`` placeholders in string values are expanded from the environment
(or the ``env`` mapping passed to :func:`load_targets`).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

from ..errors import ManifestError
from .base import DeployTarget

_VAR_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_REQUIRED = ("remote", "target_dir")
_KNOWN = {"remote", "target_dir", "ref", "post_deploy", "provider", "env"}


def _expand(value: Any, env: dict[str, str]) -> Any:
    if isinstance(value, str):
        return _VAR_RE.sub(lambda m: env.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _expand(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v, env) for v in value]
    return value


def _target_from_entry(name: str, entry: Any, base_dir: Path) -> DeployTarget:
    if not isinstance(entry, dict):
        raise ManifestError(f"target {name}: expected a mapping", {"target": name})
    missing = [k for k in _REQUIRED if not entry.get(k)]
    if missing:
        raise ManifestError(f"target {name}: missing {', '.join(missing)}",
                            {"target": name, "missing": missing})
    unknown = sorted(set(entry) - _KNOWN)
    if unknown:
        raise ManifestError(f"target {name}: unknown keys {', '.join(unknown)}",
                            {"target": name, "unknown": unknown})

    target_dir = Path(str(entry["target_dir"])).expanduser()
    if not target_dir.is_absolute():
        target_dir = base_dir / target_dir
    env = entry.get("env") or {}
    if not isinstance(env, dict):
        raise ManifestError(f"target {name}: env must be a mapping", {"target": name})

    return DeployTarget(
        remote=str(entry["remote"]),
        target_dir=target_dir,
        ref=str(entry.get("ref") or "main"),
        post_deploy=str(entry.get("post_deploy") or ""),
        provider=str(entry.get("provider") or "git"),
        env={str(k): "" if v is None else str(v) for k, v in env.items()},
    )


def load_targets(path: str | Path, env: dict[str, str] | None = None) -> dict[str, DeployTarget]:
    """Parse the manifest into ``{name: DeployTarget}``; relative dirs resolve against the manifest."""
    manifest = Path(path).expanduser().resolve()
    if not manifest.is_file():
        raise ManifestError(f"manifest not found: {manifest}", {"path": str(manifest)})
    try:
        data = yaml.safe_load(manifest.read_text()) or {}
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML in {manifest}: {e}", {"path": str(manifest)}) from e
    if not isinstance(data, dict) or "targets" not in data:
        raise ManifestError(f"{manifest}: top-level 'targets' is required", {"path": str(manifest)})

    data = _expand(data, dict(os.environ if env is None else env))
    entries = data["targets"]
    if isinstance(entries, list):
        named = {}
        for i, entry in enumerate(entries):
            name = entry.get("name") if isinstance(entry, dict) else None
            if isinstance(entry, dict):
                entry = {k: v for k, v in entry.items() if k != "name"}
            named[str(name or i)] = entry
        entries = named
    elif not isinstance(entries, dict):
        raise ManifestError(f"{manifest}: 'targets' must be a list or mapping", {"path": str(manifest)})

    return {str(name): _target_from_entry(str(name), entry, manifest.parent)
            for name, entry in entries.items()}
