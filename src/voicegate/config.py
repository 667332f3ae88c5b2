"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Filter-set table persisted as a JSON array
    filters_path: Path = Field(
        default_factory=lambda: Path("data/filters.json"),
        validation_alias=AliasChoices("FILTERS_PATH", "filters_path"),
    )
    filter_sweep_interval_seconds: float = Field(
        default=3600.0,
        ge=1,
        validation_alias=AliasChoices(
            "FILTER_SWEEP_INTERVAL_SECONDS",
            "filter_sweep_interval_seconds",
        ),
    )
    default_filter_id: str = Field(
        default="default",
        min_length=1,
        validation_alias=AliasChoices("DEFAULT_FILTER_ID", "default_filter_id"),
    )
    default_deny_items: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("DEFAULT_DENY_ITEMS", "default_deny_items"),
        description="Permanent deny entries seeded into the default filter set.",
    )

    cleaner_min_repetitions: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices(
            "CLEANER_MIN_REPETITIONS", "cleaner_min_repetitions"
        ),
    )
    cleaner_max_length: int = Field(
        default=200,
        ge=4,
        validation_alias=AliasChoices("CLEANER_MAX_LENGTH", "cleaner_max_length"),
    )
    cleaner_case_sensitive: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "CLEANER_CASE_SENSITIVE", "cleaner_case_sensitive"
        ),
    )

    speech_template: str = Field(
        default="user msg",
        validation_alias=AliasChoices("SPEECH_TEMPLATE", "speech_template"),
        description="Template rendered with the event's user and msg placeholders.",
    )
    remove_backslashes: bool = Field(
        default=True,
        validation_alias=AliasChoices("REMOVE_BACKSLASHES", "remove_backslashes"),
    )
    ignored_event_names: list[str] = Field(
        default_factory=lambda: ["server", "join", "leave", "unknown"],
        validation_alias=AliasChoices(
            "IGNORED_EVENT_NAMES", "ignored_event_names"
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
