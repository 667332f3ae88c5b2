"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from voicegate.config import Settings, get_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FILTERS_PATH", "CLEANER_MAX_LENGTH", "IGNORED_EVENT_NAMES"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.filters_path == Path("data/filters.json")
    assert settings.cleaner_min_repetitions == 3
    assert settings.cleaner_max_length == 200
    assert settings.ignored_event_names == ["server", "join", "leave", "unknown"]
    assert settings.speech_template == "user msg"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLEANER_MAX_LENGTH", "50")
    monkeypatch.setenv("CLEANER_CASE_SENSITIVE", "true")
    monkeypatch.setenv("DEFAULT_DENY_ITEMS", '["a", "b"]')
    monkeypatch.setenv("FILTER_SWEEP_INTERVAL_SECONDS", "120")

    settings = Settings(_env_file=None)

    assert settings.cleaner_max_length == 50
    assert settings.cleaner_case_sensitive is True
    assert settings.default_deny_items == ["a", "b"]
    assert settings.filter_sweep_interval_seconds == 120


def test_invalid_values_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLEANER_MAX_LENGTH", "3")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
