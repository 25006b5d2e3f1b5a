"""Provider registry: built-in backends plus ``plugin.py`` files from plugin dirs."""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Callable

from ..errors import UnknownProviderError
from .archive import ArchiveDeployProvider
from .base import DeployProvider, conforms
from .git import GitDeployProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], DeployProvider]

BUILTIN: dict[str, ProviderFactory] = {
    "git": GitDeployProvider,
    "archive": ArchiveDeployProvider,
}

_PROVIDERS: dict[str, ProviderFactory] = {}


def register_provider(provider_id: str, factory: ProviderFactory) -> None:
    """Register (or replace) the factory used for ``provider_id``."""
    if not provider_id:
        raise ValueError("provider id must not be empty")
    _PROVIDERS[provider_id] = factory


def _register_from_module(mod: ModuleType, source: Path) -> bool:
    """Register the module's ``Provider`` class. Returns True when successful."""
    cls = getattr(mod, "Provider", None)
    if cls is None:
        logger.warning("plugin %s defines no Provider class", source)
        return False
    try:
        instance = cls()
    except Exception:
        logger.exception("plugin %s: Provider() failed", source)
        return False
    if not conforms(instance):
        logger.warning("plugin %s: Provider has no deploy(target) method", source)
        return False
    provider_id = getattr(instance, "id", "") or source.parent.name
    register_provider(provider_id, cls)
    logger.info("registered deploy provider %r from %s", provider_id, source)
    return True


def _iter_plugin_files(extra_dir: Path):
    """Yield plugin.py files: ``<dir>/plugin.py`` and ``<dir>/<name>/plugin.py``."""
    direct = extra_dir / "plugin.py"
    if direct.is_file():
        yield direct
    for child in sorted(extra_dir.iterdir()):
        if not child.is_dir() or child.name.startswith((".", "_")):
            continue
        plugin_file = child / "plugin.py"
        if plugin_file.is_file():
            yield plugin_file


def _discover_external(extra_dirs: list[Path]) -> None:
    for root in extra_dirs:
        d = Path(root).expanduser().resolve()
        if not d.is_dir():
            logger.debug("plugin dir %s does not exist", d)
            continue
        for plugin_file in _iter_plugin_files(d):
            mod_name = f"shipwright_ext_provider_{plugin_file.parent.name}_{abs(hash(str(plugin_file)))}"
            try:
                spec = importlib.util.spec_from_file_location(mod_name, str(plugin_file))
                if spec is None or spec.loader is None:
                    continue
                mod = importlib.util.module_from_spec(spec)
                spec.loader.exec_module(mod)
            except Exception:
                logger.exception("failed to load plugin %s", plugin_file)
                continue
            _register_from_module(mod, plugin_file)


def discover_providers(extra_dirs: list[Path] | None = None,
                       force_reload: bool = False) -> dict[str, ProviderFactory]:
    """Return the registry, loading built-ins and any plugins under ``extra_dirs``."""
    if force_reload:
        _PROVIDERS.clear()
    for provider_id, factory in BUILTIN.items():
        _PROVIDERS.setdefault(provider_id, factory)
    if extra_dirs:
        _discover_external(extra_dirs)
    return dict(_PROVIDERS)


def get_provider(provider_id: str, timeout: int | None = None) -> DeployProvider:
    """Instantiate a fresh provider for one deploy invocation.

    ``timeout`` overrides the per-command timeout of providers that have one.
    """
    if provider_id not in _PROVIDERS:
        discover_providers()
    factory = _PROVIDERS.get(provider_id)
    if factory is None:
        raise UnknownProviderError(provider_id)
    provider = factory()
    if timeout is not None and hasattr(provider, "timeout"):
        provider.timeout = timeout
    return provider


def list_providers() -> list[dict]:
    if not _PROVIDERS:
        discover_providers()
    out = []
    for provider_id, factory in _PROVIDERS.items():
        out.append({
            "id": provider_id,
            "name": getattr(factory, "name", provider_id),
        })
    return sorted(out, key=lambda x: x["id"])
