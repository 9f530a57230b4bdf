"""Tests for JSONL logging bootstrap."""

import json
import logging

import pytest
from amd_loader.logging_setup import JsonlHandler
from amd_loader.logging_setup import init_json_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def test_writes_jsonl_with_extras(tmp_path, restore_root_logger):
    log_path = tmp_path / "logs" / "loader.jsonl"
    init_json_logging(str(log_path), "debug")

    logging.getLogger("amd_loader.watchdog").warning(
        "fetch of /s/a.py still not resolved after 5 seconds!",
        extra={"event": "loader:stall", "operation": "fetch of /s/a.py", "waited": 5.0},
    )

    lines = log_path.read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["lvl"] == "WARNING"
    assert payload["event"] == "loader:stall"
    assert payload["operation"] == "fetch of /s/a.py"
    assert payload["waited"] == 5.0
    assert payload["schema"]["name"] == "amd_loader.log"
    assert "lineno" not in payload


def test_reinit_replaces_handler(tmp_path, restore_root_logger):
    init_json_logging(str(tmp_path / "a.jsonl"))
    init_json_logging(str(tmp_path / "b.jsonl"))

    handlers = [h for h in logging.getLogger().handlers if isinstance(h, JsonlHandler)]
    assert len(handlers) == 1
    assert handlers[0].path == tmp_path / "b.jsonl"


def test_level_applied(tmp_path, restore_root_logger):
    init_json_logging(str(tmp_path / "a.jsonl"), "error")
    assert logging.getLogger().level == logging.ERROR
