"""
Tests for configuration management in `smart_toilet/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level and time range coercion
- Firebase URL validation
- get_config cache behavior and reset
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog
from pydantic import ValidationError

from smart_toilet.config import (
    AppConfig,
    FirebaseConfig,
    LoggingConfig,
    MonitoringConfig,
    configure_logging,
    get_config,
    load_config_from_env,
    reset_config_cache,
)

DATABASE_URL = "https://smart-toilet-test-default-rtdb.firebaseio.com"


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    reset_config_cache()
    yield
    reset_config_cache()


def _set_minimal_valid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set the minimal environment required for config to validate."""
    monkeypatch.setenv("FIREBASE_DATABASE_URL", DATABASE_URL)
    monkeypatch.delenv("FIREBASE_CREDENTIALS_PATH", raising=False)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("POLL_INTERVAL_SECONDS", raising=False)
    monkeypatch.delenv("DEFAULT_TIME_RANGE", raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.logging.level == "INFO"
    assert config.monitoring.poll_interval_seconds == 30.0
    assert config.monitoring.default_time_range == "weekly"
    assert config.firebase.database_url == DATABASE_URL
    assert config.firebase.credentials_path is None
    assert config.firebase.users_root == "Users"
    assert config.firebase.history_collection == "healthData"


def test_production_uses_json_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ENVIRONMENT", "production")

    config = load_config_from_env()

    assert config.debug is False
    assert config.logging.format == "json"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert load_config_from_env().logging.level == "ERROR"


def test_monitoring_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("DEFAULT_TIME_RANGE", "Monthly")
    monkeypatch.setenv("FIREBASE_CREDENTIALS_PATH", "/secrets/sa.json")

    config = load_config_from_env()

    assert config.monitoring.poll_interval_seconds == 5.0
    assert config.monitoring.default_time_range == "monthly"
    assert config.firebase.credentials_path == "/secrets/sa.json"


def test_unknown_time_range_falls_back_to_weekly(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("DEFAULT_TIME_RANGE", "fortnightly")
    assert load_config_from_env().monitoring.default_time_range == "weekly"


def test_non_positive_poll_interval_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "0")

    with pytest.raises(ValidationError):
        load_config_from_env()


def test_missing_database_url_fails_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FIREBASE_DATABASE_URL", raising=False)

    with pytest.raises(ValidationError, match="database URL must be set"):
        load_config_from_env()


@pytest.mark.parametrize("url", ["http://insecure.firebaseio.com", "smart-toilet.firebaseio.com"])
def test_database_url_must_be_https(url: str) -> None:
    with pytest.raises(ValidationError, match="https"):
        FirebaseConfig(database_url=url)


def test_database_url_trailing_slash_is_stripped() -> None:
    assert FirebaseConfig(database_url=DATABASE_URL + "/").database_url == DATABASE_URL


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ENVIRONMENT", "development")

    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache

    reset_config_cache()
    assert get_config() is not c1


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(
            environment="production",
            debug=True,
            firebase=FirebaseConfig(database_url=DATABASE_URL),
            monitoring=MonitoringConfig(),
            logging=LoggingConfig(),
        )


@pytest.mark.parametrize("fmt", ["json", "console"])
def test_configure_logging(fmt: str) -> None:
    configure_logging(LoggingConfig(level="DEBUG", format=fmt))
    try:
        processors = structlog.get_config()["processors"]
        renderer = processors[-1]
        expected = (
            structlog.dev.ConsoleRenderer
            if fmt == "console"
            else structlog.processors.JSONRenderer
        )
        assert isinstance(renderer, expected)
    finally:
        structlog.reset_defaults()
