"""Schemas for placeholder substitution."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ReplacementOption(BaseModel):
    """Where a placeholder takes its value from."""

    model_config = ConfigDict(frozen=True)

    data_key: str = Field(..., description="Key looked up in the event data")
    default_value: str = Field(
        default="", description="Used when the key is missing or null"
    )


class ReplacerConfig(BaseModel):
    """Placeholder table; pattern order is the order patterns are applied in."""

    model_config = ConfigDict(frozen=True)

    instance_id: str = "default"
    replacements: Dict[str, ReplacementOption] = Field(default_factory=dict)
    remove_backslashes: bool = True


class ReplacementRecord(BaseModel):
    """Which placeholder produced a substituted value."""

    original_pattern: str
    data_key: str
    replaced_value: str


class TrackedReplacement(BaseModel):
    """Output of a tracked substitution together with its provenance map."""

    output: Any = None
    records: Dict[str, ReplacementRecord] = Field(default_factory=dict)


__all__ = [
    "ReplacementOption",
    "ReplacementRecord",
    "ReplacerConfig",
    "TrackedReplacement",
]
