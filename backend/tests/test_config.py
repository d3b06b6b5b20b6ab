from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings


def test_defaults_match_upstream_contract():
    settings = Settings()

    assert settings.catalog_timeout_seconds == 30.0
    assert settings.subgraph_timeout_seconds == 60.0
    assert settings.ledger_page_size == 1000
    assert settings.ledger_max_skip == 10_000
    assert settings.expiry_grace_hours == 24


def test_cors_origins_accept_comma_separated_string():
    settings = Settings(cors_allowed_origins=" http://a.test , ,http://b.test")

    assert settings.cors_allowed_origins == ["http://a.test", "http://b.test"]


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("LEDGER_ENABLED", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.ledger_enabled is False
    assert settings.log_level == "DEBUG"


def test_negative_grace_window_is_rejected():
    with pytest.raises(ValidationError):
        Settings(expiry_grace_hours=-1)
