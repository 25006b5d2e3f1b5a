"""Exception types raised by deployers and installers."""

from __future__ import annotations

from typing import Any


class ShipwrightError(Exception):
    """Base error; ``context`` carries structured details for logs and API replies."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, **self.context}


class DeploymentError(ShipwrightError):
    """A deploy provider failed at ``stage`` (fetch, checkout or apply)."""

    def __init__(self, stage: str, message: str, cause: str = "", provider: str = ""):
        stage = getattr(stage, "value", stage)
        super().__init__(message, {"stage": stage, "provider": provider, "cause": cause})
        self.stage = stage
        self.cause = cause
        self.provider = provider

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.cause:
            text += f": {self.cause}"
        return text


class UnknownProviderError(ShipwrightError):
    def __init__(self, provider_id: str):
        super().__init__(f"unknown deploy provider: {provider_id}", {"provider": provider_id})
        self.provider_id = provider_id


class ManifestError(ShipwrightError):
    """Deploy manifest is missing, unreadable or malformed."""


class UnsupportedPlatformError(ShipwrightError):
    def __init__(self, platform: str):
        platform = getattr(platform, "value", platform)
        super().__init__(f"no installer for platform: {platform}", {"platform": platform})
        self.platform = platform


class InstallationFailedError(ShipwrightError):
    """Installer process exited non-zero; ``result`` is the InstallResult observed."""

    def __init__(self, returncode: int, result=None):
        context = {"returncode": returncode}
        if result is not None:
            context["platform"] = result.platform.value
            context["command"] = list(result.command)
        super().__init__(f"installer exited with status {returncode}", context)
        self.returncode = returncode
        self.result = result
