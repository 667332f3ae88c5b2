"""Schemas for the repetition normalizer."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CleanerOptions(BaseModel):
    """Tuning knobs for spam repetition cleanup."""

    model_config = ConfigDict(frozen=True)

    min_repetitions: int = Field(
        default=3,
        ge=1,
        description="Run length at which a repeated unit counts as spam",
    )
    max_length: int = Field(
        default=200,
        ge=4,
        description="Cleaned text longer than this is truncated with an ellipsis",
    )
    case_sensitive: bool = Field(
        default=False,
        description="Compare repeated words and phrases case-sensitively",
    )


class CleaningResult(BaseModel):
    """Outcome of cleaning one message."""

    original: str
    cleaned: str
    was_spam: bool = False
    repetitions_found: int = 0
    pattern: Optional[str] = None
    reduction_percentage: int = 0


__all__ = ["CleanerOptions", "CleaningResult"]
