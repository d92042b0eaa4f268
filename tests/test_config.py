"""Tests for settings loading."""

import logging
from pathlib import Path

import pytest

from modcert.config import DEFAULT_ALLOWED_DOMAINS, Settings

_ENV_VARS = [
    "MODCERT_CONFIG",
    "MODCERT_DATA_DIR",
    "MODCERT_STORE",
    "MODCERT_ALLOWED_EMAIL_DOMAINS",
    "MODCERT_RATE_LIMIT_MAX",
    "MODCERT_RATE_LIMIT_WINDOW",
    "MODCERT_DUPLICATE_WINDOW",
    "MODCERT_WINDOW_STORE",
    "MODCERT_REDIS_URL",
    "MODCERT_AUDIT_ASYNC",
    "MODCERT_LOG_LEVEL",
    "MODCERT_TOKEN_TTL_HOURS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()
    assert settings.store_backend == "json"
    assert settings.allowed_email_domains == DEFAULT_ALLOWED_DOMAINS
    assert settings.rate_limit_max == 10
    assert settings.rate_limit_window == 60
    assert settings.duplicate_window == 30
    assert settings.window_store == "memory"
    assert settings.audit_async is True


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MODCERT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("MODCERT_STORE", "MEMORY")
    monkeypatch.setenv("MODCERT_ALLOWED_EMAIL_DOMAINS", "Example.com, wbs.de")
    monkeypatch.setenv("MODCERT_RATE_LIMIT_MAX", "3")
    monkeypatch.setenv("MODCERT_AUDIT_ASYNC", "false")

    settings = Settings.from_env()
    assert settings.data_dir == Path(tmp_path)
    assert settings.store_backend == "memory"
    assert settings.allowed_email_domains == ["example.com", "wbs.de"]
    assert settings.rate_limit_max == 3
    assert settings.audit_async is False


def test_bad_integer_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("MODCERT_RATE_LIMIT_WINDOW", "a minute")
    with caplog.at_level(logging.WARNING, logger="modcert.config"):
        settings = Settings.from_env()
    assert settings.rate_limit_window == 60
    assert "MODCERT_RATE_LIMIT_WINDOW" in caplog.text


def test_yaml_file_then_environment(monkeypatch, tmp_path):
    config = tmp_path / "modcert.yaml"
    config.write_text(
        "store_backend: memory\n"
        "rate_limit_max: 5\n"
        "duplicate_window: 10\n"
        "allowed_email_domains: [school.example]\n"
    )
    monkeypatch.setenv("MODCERT_CONFIG", str(config))
    monkeypatch.setenv("MODCERT_RATE_LIMIT_MAX", "7")

    settings = Settings.from_env()
    assert settings.store_backend == "memory"
    assert settings.duplicate_window == 10
    assert settings.allowed_email_domains == ["school.example"]
    assert settings.rate_limit_max == 7


def test_yaml_unknown_keys_warn(tmp_path, caplog):
    config = tmp_path / "modcert.yaml"
    config.write_text("rate_limit_max: 4\ncolour: blue\n")
    with caplog.at_level(logging.WARNING, logger="modcert.config"):
        settings = Settings.from_file(config)
    assert settings.rate_limit_max == 4
    assert "colour" in caplog.text


def test_yaml_must_be_mapping(tmp_path):
    config = tmp_path / "modcert.yaml"
    config.write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="must contain a mapping"):
        Settings.from_file(config)
