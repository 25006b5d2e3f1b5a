"""Shared fixtures: a throwaway git repository and a clean provider registry."""
import shutil
import subprocess

import pytest

from shipwright.deployers import discover_providers

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")


def git(*args, cwd):
    """Run git with a fixed identity; returns stripped stdout."""
    res = subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=cwd, check=True, capture_output=True, text=True,
    )
    return res.stdout.strip()


def commit_file(repo, name, text, message="update"):
    (repo / name).write_text(text)
    git("add", name, cwd=repo)
    git("commit", "-q", "-m", message, cwd=repo)
    return git("rev-parse", "HEAD", cwd=repo)


@pytest.fixture
def source_repo(tmp_path):
    """A repo with one commit on ``main``; use ``repo.as_uri()`` as the remote."""
    repo = tmp_path / "source"
    repo.mkdir()
    git("init", "-q", cwd=repo)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo)
    commit_file(repo, "index.html", "<h1>v1</h1>\n", message="initial")
    return repo


@pytest.fixture(autouse=True)
def clean_registry():
    discover_providers(force_reload=True)
    yield
    discover_providers(force_reload=True)
