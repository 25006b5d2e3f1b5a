"""Tests for settings loading and JSON-lines logging."""
import json
import logging
import os
from pathlib import Path

import pytest

from shipwright.config import Settings, load_settings, read_env_file
from shipwright.log import LOG_FILE, JsonLineFormatter, setup_logging


def test_defaults(tmp_path):
    s = load_settings({"SHIPWRIGHT_ROOT": str(tmp_path)})
    assert s.root == tmp_path.resolve()
    assert s.log_level == "INFO"
    assert s.log_dir is None
    assert s.plugin_dirs == []
    assert s.git_timeout == 300
    assert s.host == "127.0.0.1"
    assert s.port == 5060


def test_env_file_overlaid_by_environment(tmp_path):
    (tmp_path / ".env").write_text(
        "# panel settings\n"
        "SHIPWRIGHT_LOG_LEVEL=debug\n"
        "SHIPWRIGHT_GIT_TIMEOUT=60\n"
        'SHIPWRIGHT_API_TOKEN="from-file"\n'
        "UNRELATED=ignored\n"
    )
    s = load_settings({
        "SHIPWRIGHT_ROOT": str(tmp_path),
        "SHIPWRIGHT_API_TOKEN": "from-env",
        "SHIPWRIGHT_PLUGIN_DIRS": os.pathsep.join(["/opt/a", "/opt/b"]),
    })
    assert s.log_level == "DEBUG"
    assert s.git_timeout == 60
    assert s.api_token == "from-env"
    assert s.plugin_dirs == [Path("/opt/a"), Path("/opt/b")]


def test_read_env_file_missing(tmp_path):
    assert read_env_file(tmp_path / ".env") == {}


def test_invalid_integer(tmp_path):
    with pytest.raises(ValueError, match="SHIPWRIGHT_PORT"):
        load_settings({"SHIPWRIGHT_ROOT": str(tmp_path), "SHIPWRIGHT_PORT": "http"})


def test_json_line_formatter_includes_extra():
    record = logging.makeLogRecord({
        "name": "shipwright.deployers", "levelno": logging.INFO, "levelname": "INFO",
        "msg": "deploy completed: %s", "args": ("/srv/site",), "commit": "abc123",
    })
    entry = json.loads(JsonLineFormatter().format(record))
    assert entry["message"] == "deploy completed: /srv/site"
    assert entry["level"] == "INFO"
    assert entry["data"] == {"commit": "abc123"}


def test_setup_logging_writes_jsonl(tmp_path):
    settings = Settings(root=tmp_path, log_dir=tmp_path / "logs", log_level="DEBUG")
    root = setup_logging(settings)
    logging.getLogger("shipwright.test").info("hello", extra={"stage": "fetch"})
    for h in root.handlers:
        h.flush()

    lines = (tmp_path / "logs" / LOG_FILE).read_text().splitlines()
    entry = json.loads(lines[-1])
    assert entry["message"] == "hello"
    assert entry["data"]["stage"] == "fetch"

    # reconfiguring replaces handlers instead of stacking them
    assert len(setup_logging(settings).handlers) == 2
    setup_logging(Settings(root=tmp_path))
