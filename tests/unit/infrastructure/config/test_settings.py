import os
from pathlib import Path

import pytest

from quicknote.infrastructure.config import settings


@pytest.fixture
def fresh_settings(monkeypatch):
    """Resets the module level settings state for each test."""
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    return settings


def test_defaults_without_any_source(fresh_settings):
    assert fresh_settings.get_api_base_url() == "https://api.notion.com"
    assert fresh_settings.get_api_version() == "2022-06-28"
    assert fresh_settings.get_request_timeout() == 10.0
    assert fresh_settings.get_cache_ttl() == 300.0
    assert fresh_settings.get_store_path() == settings.DEFAULT_STORE_FILE


def test_yaml_settings_are_flattened(fresh_settings, tmp_path):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text(
        "api:\n  timeout_seconds: 3.5\ncache:\n  ttl_seconds: 60\nlogging:\n  level: DEBUG\n",
        encoding="utf-8",
    )
    fresh_settings.load_configuration(settings_file=settings_file, env_file=tmp_path / "missing.env")

    assert fresh_settings.get_request_timeout() == 3.5
    assert fresh_settings.get_cache_ttl() == 60.0
    assert fresh_settings.get_config("logging.level") == "DEBUG"


def test_environment_overrides_yaml(fresh_settings, tmp_path, monkeypatch):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text("api:\n  version: '2021-08-16'\n", encoding="utf-8")
    monkeypatch.setenv("QUICKNOTE_API_VERSION", "2022-06-28")
    monkeypatch.setenv("QUICKNOTE_CACHE_TTL_SECONDS", "42")

    fresh_settings.load_configuration(settings_file=settings_file, env_file=tmp_path / "missing.env")

    assert fresh_settings.get_api_version() == "2022-06-28"
    assert fresh_settings.get_config("cache.ttl_seconds") == 42


def test_dotenv_file_is_loaded(fresh_settings, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("QUICKNOTE_STORE_PATH=~/notes/config.yaml\n", encoding="utf-8")

    fresh_settings.load_configuration(settings_file=tmp_path / "none.yaml", env_file=env_file)
    try:
        assert fresh_settings.get_store_path() == Path("~/notes/config.yaml").expanduser()
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("QUICKNOTE_STORE_PATH", None)


def test_broken_yaml_is_ignored(fresh_settings, tmp_path):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text("api: [unclosed", encoding="utf-8")

    fresh_settings.load_configuration(settings_file=settings_file, env_file=tmp_path / "missing.env")

    assert fresh_settings.get_api_base_url() == "https://api.notion.com"


def test_test_config_takes_priority(fresh_settings, monkeypatch):
    monkeypatch.setenv("QUICKNOTE_API_BASE_URL", "https://env.example")
    fresh_settings.set_config_for_testing({"api.base_url": "https://test.example"})
    assert fresh_settings.get_api_base_url() == "https://test.example"

    fresh_settings.clear_test_config()
    assert fresh_settings.get_api_base_url() == "https://env.example"


@pytest.mark.parametrize("raw, expected", [("true", True), ("False", False), ("7", 7), ("2.5", 2.5), ("abc", "abc")])
def test_environment_values_are_coerced(fresh_settings, monkeypatch, raw, expected):
    monkeypatch.setenv("QUICKNOTE_SOME_KEY", raw)
    assert fresh_settings.get_config("some.key") == expected
