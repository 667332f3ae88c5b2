"""Webhook intake: decide what of an incoming stream event gets spoken."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..schemas.cleaning import CleaningResult
from ..schemas.events import PipelineOutcome
from ..services.moderation_pipeline import ModerationPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


def get_pipeline(request: Request) -> ModerationPipeline:
    pipeline = getattr(request.app.state, "moderation_pipeline", None)
    if pipeline is None:  # pragma: no cover - defensive
        raise RuntimeError("Moderation pipeline is not configured")
    return pipeline


@router.post("/webhook", response_model=PipelineOutcome)
async def receive_event(
    request: Request,
    pipeline: ModerationPipeline = Depends(get_pipeline),
) -> PipelineOutcome:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Rejected webhook with invalid JSON: %s", exc)
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc

    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object")

    return pipeline.process_event(body)


@router.get("/api/clean", response_model=CleaningResult)
async def clean_text(
    text: str = Query(..., description="Text to normalize"),
    pipeline: ModerationPipeline = Depends(get_pipeline),
) -> CleaningResult:
    return pipeline.cleaner.clean(text)


@router.get("/api/moderate", response_model=PipelineOutcome)
async def moderate_text(
    text: str = Query(..., description="Text to clean and classify"),
    pipeline: ModerationPipeline = Depends(get_pipeline),
) -> PipelineOutcome:
    return pipeline.process_text(text)


__all__ = ["router", "get_pipeline"]
