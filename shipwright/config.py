"""Runtime settings: environment variables overlaid on the project ``.env`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "SHIPWRIGHT_"

DEFAULTS = {
    "SHIPWRIGHT_LOG_LEVEL": "INFO",
    "SHIPWRIGHT_LOG_DIR": "",
    "SHIPWRIGHT_PLUGIN_DIRS": "",
    "SHIPWRIGHT_GIT_TIMEOUT": "300",
    "SHIPWRIGHT_API_TOKEN": "",
    "SHIPWRIGHT_HOST": "127.0.0.1",
    "SHIPWRIGHT_PORT": "5060",
}


@dataclass(frozen=True)
class Settings:
    root: Path
    log_level: str = "INFO"
    log_dir: Path | None = None
    plugin_dirs: list[Path] = field(default_factory=list)
    git_timeout: int = 300
    api_token: str = ""
    host: str = "127.0.0.1"
    port: int = 5060


def read_env_file(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; blank lines and ``#`` comments are skipped."""
    data: dict[str, str] = {}
    if not path.exists():
        return data
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            data[k.strip()] = v.strip().strip('"').strip("'")
    return data


def _int(value: str, key: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}") from None


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from defaults, ``<root>/.env`` and the process environment (in that order)."""
    env = dict(os.environ if environ is None else environ)
    root = Path(env.get("SHIPWRIGHT_ROOT") or os.getcwd()).expanduser().resolve()

    data = dict(DEFAULTS)
    data.update({k: v for k, v in read_env_file(root / ".env").items() if k.startswith(ENV_PREFIX)})
    data.update({k: v for k, v in env.items() if k.startswith(ENV_PREFIX)})

    log_dir = data["SHIPWRIGHT_LOG_DIR"]
    plugin_dirs = [Path(p).expanduser() for p in data["SHIPWRIGHT_PLUGIN_DIRS"].split(os.pathsep) if p]
    return Settings(
        root=root,
        log_level=data["SHIPWRIGHT_LOG_LEVEL"].upper(),
        log_dir=Path(log_dir).expanduser() if log_dir else None,
        plugin_dirs=plugin_dirs,
        git_timeout=_int(data["SHIPWRIGHT_GIT_TIMEOUT"], "SHIPWRIGHT_GIT_TIMEOUT"),
        api_token=data["SHIPWRIGHT_API_TOKEN"],
        host=data["SHIPWRIGHT_HOST"],
        port=_int(data["SHIPWRIGHT_PORT"], "SHIPWRIGHT_PORT"),
    )
