"""Tests for loader settings."""

from pathlib import Path

import pytest
from amd_loader.settings import LoaderSettings
from amd_loader.settings import load_settings
from pydantic import ValidationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CONFIG", "WATCHDOG_INTERVAL", "BASE_URL", "ROOT", "DETECT_CYCLES"):
        monkeypatch.delenv(f"AMD_LOADER_{name}", raising=False)


def test_defaults():
    settings = LoaderSettings()
    assert settings.watchdog_interval == 5.0
    assert settings.default_suffix == ".py"
    assert settings.transpiled_suffixes == {".coco": ".py"}
    assert settings.detect_cycles is True
    assert settings.base_url is None
    assert settings.imports == {}


def test_imports_normalized_to_lists():
    settings = LoaderSettings(imports={"foo": "/s/foo.py", "widget": ["/s/w.py", "/s/w.css"]})
    assert settings.imports == {"foo": ["/s/foo.py"], "widget": ["/s/w.py", "/s/w.css"]}


def test_invalid_interval():
    with pytest.raises(ValidationError):
        LoaderSettings(watchdog_interval=0)


def test_load_from_yaml(tmp_path):
    config = tmp_path / "amd-loader.yaml"
    config.write_text(
        "root: ./static\n"
        "watchdog_interval: 2\n"
        "imports:\n"
        "  foo: /s/foo.py\n"
        "  widget: [/s/widget.py, /s/widget.css]\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.root == Path("./static")
    assert settings.watchdog_interval == 2.0
    assert settings.imports["foo"] == ["/s/foo.py"]
    assert settings.imports["widget"] == ["/s/widget.py", "/s/widget.css"]


def test_empty_yaml(tmp_path):
    config = tmp_path / "empty.yaml"
    config.write_text("", encoding="utf-8")
    assert load_settings(config) == LoaderSettings()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="not found"):
        load_settings(tmp_path / "nope.yaml")


def test_env_config_path_and_overrides(tmp_path, monkeypatch):
    config = tmp_path / "amd-loader.yaml"
    config.write_text("watchdog_interval: 2\nbase_url: https://a.test/\n", encoding="utf-8")
    monkeypatch.setenv("AMD_LOADER_CONFIG", str(config))
    monkeypatch.setenv("AMD_LOADER_BASE_URL", "https://b.test/")
    monkeypatch.setenv("AMD_LOADER_DETECT_CYCLES", "false")

    settings = load_settings()

    assert settings.watchdog_interval == 2.0
    assert settings.base_url == "https://b.test/"
    assert settings.detect_cycles is False


def test_no_file_uses_defaults_and_env(monkeypatch):
    monkeypatch.setenv("AMD_LOADER_WATCHDOG_INTERVAL", "0.5")
    assert load_settings().watchdog_interval == 0.5
