"""HTTP API: trigger a deploy over ``POST /api/deploy``."""
from __future__ import annotations

import hmac
import logging
from pathlib import Path

from flask import Flask, jsonify, request

from . import __version__
from .config import Settings, load_settings
from .deployers import DeployTarget, deploy, discover_providers, list_providers
from .errors import DeploymentError, UnknownProviderError
from .log import setup_logging

logger = logging.getLogger(__name__)

_FIELDS = ("remote", "target_dir", "ref", "post_deploy", "provider")


def _parse_target(data: dict) -> DeployTarget:
    """Validate the request body; raises ValueError with a user-facing message."""
    unknown = sorted(set(data) - set(_FIELDS))
    if unknown:
        raise ValueError(f"unknown fields: {', '.join(unknown)}")
    for key in _FIELDS:
        if key in data and not isinstance(data[key], str):
            raise ValueError(f"{key} must be a string")
    remote = data.get("remote", "").strip()
    target_dir = data.get("target_dir", "").strip()
    if not remote:
        raise ValueError("remote required")
    if not target_dir:
        raise ValueError("target_dir required")
    if not Path(target_dir).is_absolute():
        raise ValueError("target_dir must be an absolute path")
    return DeployTarget(
        remote=remote,
        target_dir=Path(target_dir),
        ref=data.get("ref", "").strip() or "main",
        post_deploy=data.get("post_deploy", ""),
        provider=data.get("provider", "").strip() or "git",
    )


def create_app(settings: Settings | None = None) -> Flask:
    settings = settings or load_settings()
    setup_logging(settings)
    discover_providers(extra_dirs=settings.plugin_dirs)

    app = Flask(__name__)
    app.config["SHIPWRIGHT"] = settings

    def _authorized() -> bool:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        return scheme.lower() == "bearer" and hmac.compare_digest(token.strip(), settings.api_token)

    @app.route("/api/health")
    def api_health():
        return jsonify({"ok": True, "version": __version__})

    @app.route("/api/providers")
    def api_providers():
        return jsonify({"ok": True, "providers": list_providers()})

    @app.route("/api/deploy", methods=["POST"])
    def api_deploy():
        """Deploy a repository or archive into a directory on this host."""
        if not settings.api_token:
            logger.warning("rejected deploy request: SHIPWRIGHT_API_TOKEN is not set")
            return jsonify({"ok": False, "error": "Deploys are disabled: no API token configured"}), 503
        if not _authorized():
            return jsonify({"ok": False, "error": "Unauthorized"}), 401
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"ok": False, "error": "JSON object body required"}), 400
        try:
            target = _parse_target(data)
        except ValueError as e:
            return jsonify({"ok": False, "error": str(e)}), 400
        try:
            result = deploy(target, timeout=settings.git_timeout)
        except UnknownProviderError as e:
            return jsonify({"ok": False, **e.to_dict()}), 400
        except DeploymentError as e:
            return jsonify({"ok": False, **e.to_dict()}), 500
        return jsonify({"ok": True, **result.to_dict()})

    return app
