"""shipwright: deploy providers and platform installers for a self-hosted panel."""
from pathlib import Path


def _read_version() -> str:
    """Installed distribution version, else a VERSION file beside or above the package."""
    try:
        from importlib.metadata import PackageNotFoundError, version
        return version("shipwright")
    except PackageNotFoundError:
        pass
    here = Path(__file__).resolve().parent
    for candidate in (here / "VERSION", here.parent / "VERSION"):
        if candidate.is_file():
            return candidate.read_text().strip()
    return "0.0.0"


__version__ = _read_version()

__all__ = ["__version__"]
