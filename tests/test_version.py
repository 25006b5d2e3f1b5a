"""Version lookup used by /api/health."""
import importlib.metadata

import shipwright


def _missing(name):
    raise importlib.metadata.PackageNotFoundError(name)


def test_version_from_installed_metadata(monkeypatch):
    monkeypatch.setattr(importlib.metadata, "version", lambda name: "9.9.9")
    assert shipwright._read_version() == "9.9.9"


def test_version_falls_back_to_version_file(monkeypatch):
    monkeypatch.setattr(importlib.metadata, "version", _missing)
    assert shipwright._read_version() == "0.1.0"


def test_version_prefers_file_inside_package(monkeypatch, tmp_path):
    pkg = tmp_path / "repo" / "shipwright"
    pkg.mkdir(parents=True)
    (pkg / "VERSION").write_text("2.0.0\n")
    (tmp_path / "repo" / "VERSION").write_text("1.0.0\n")
    monkeypatch.setattr(importlib.metadata, "version", _missing)
    monkeypatch.setattr(shipwright, "__file__", str(pkg / "__init__.py"))
    assert shipwright._read_version() == "2.0.0"


def test_version_without_metadata_or_file(monkeypatch, tmp_path):
    monkeypatch.setattr(importlib.metadata, "version", _missing)
    monkeypatch.setattr(shipwright, "__file__", str(tmp_path / "shipwright" / "__init__.py"))
    assert shipwright._read_version() == "0.0.0"
