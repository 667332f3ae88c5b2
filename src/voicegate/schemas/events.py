"""Schemas for incoming stream events and pipeline outcomes."""

from typing import Optional

from pydantic import BaseModel, Field

from .cleaning import CleaningResult
from .filters import CheckVerdict


class EventMessage(BaseModel):
    """User and message fields pulled out of a heterogeneous event payload."""

    id: Optional[str] = None
    unique_id: Optional[str] = None

    display_name: Optional[str] = None
    nickname: Optional[str] = None
    username: Optional[str] = None

    message: Optional[str] = None
    content: Optional[str] = None
    comment: Optional[str] = None
    text: Optional[str] = None
    msg: Optional[str] = None


class PipelineOutcome(BaseModel):
    """What the moderation pipeline decided for one event or text."""

    accepted: bool = Field(..., description="True when the text should be spoken")
    text: str = Field(default="", description="Cleaned text ready for speech")
    user: Optional[str] = None
    msg: Optional[str] = None
    event_name: Optional[str] = None
    reason: str = Field(
        default="accepted",
        description="accepted, empty, ignored_event, blocked or cleaned_empty",
    )
    verdict: Optional[CheckVerdict] = None
    cleaning: Optional[CleaningResult] = None


__all__ = ["EventMessage", "PipelineOutcome"]
