"""Tests for deploy.yml manifest loading."""
from pathlib import Path

import pytest

from shipwright.deployers import load_targets
from shipwright.errors import ManifestError


def test_load_targets_list_form(tmp_path):
    manifest = tmp_path / "deploy.yml"
    manifest.write_text(
        """
targets:
  - name: site
    remote: ${SITE_REPO}
    target_dir: /srv/site
    ref: release
    post_deploy: npm ci && npm run build
    env:
      NODE_ENV: production
  - remote: /releases/api.zip
    target_dir: api
    provider: archive
""".strip()
    )

    targets = load_targets(manifest, env={"SITE_REPO": "https://git.example.test/site.git"})

    site = targets["site"]
    assert site.remote == "https://git.example.test/site.git"
    assert site.target_dir == Path("/srv/site")
    assert site.ref == "release"
    assert site.env == {"NODE_ENV": "production"}
    api = targets["1"]
    assert api.provider == "archive"
    assert api.ref == "main"
    assert api.target_dir == tmp_path.resolve() / "api"


def test_load_targets_mapping_form(tmp_path):
    manifest = tmp_path / "deploy.yml"
    manifest.write_text("targets:\n  blog:\n    remote: https://x.test/b.git\n    target_dir: /srv/blog\n")
    assert list(load_targets(manifest, env={})) == ["blog"]


@pytest.mark.parametrize("text,error", [
    ("targets:\n  - target_dir: /srv/x\n", "missing remote"),
    ("targets:\n  - remote: r\n    target_dir: /x\n    branch: dev\n", "unknown keys branch"),
    ("targets: 3\n", "list or mapping"),
    ("services: {}\n", "'targets' is required"),
    ("targets: [\n", "invalid YAML"),
])
def test_load_targets_errors(tmp_path, text, error):
    manifest = tmp_path / "deploy.yml"
    manifest.write_text(text)
    with pytest.raises(ManifestError, match=error):
        load_targets(manifest, env={})


def test_load_targets_missing_file(tmp_path):
    with pytest.raises(ManifestError, match="not found"):
        load_targets(tmp_path / "deploy.yml")
