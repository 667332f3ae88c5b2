"""API routes for administering allow/deny filter sets."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ..schemas.filters import (
    CheckOptions,
    CheckPayload,
    CheckVerdict,
    DenyItemsPayload,
    FilterCreatePayload,
    FilterSet,
    FilterStats,
    ItemsPayload,
    TogglePayload,
)
from ..services.filter_manager import FilterManager
from ..services.filter_sweeper import FilterSweeper

router = APIRouter(prefix="/api/filters", tags=["filters"])


def get_filter_manager(request: Request) -> FilterManager:
    manager = getattr(request.app.state, "filter_manager", None)
    if manager is None:  # pragma: no cover - defensive
        raise RuntimeError("Filter manager is not configured")
    return manager


def get_filter_sweeper(request: Request) -> FilterSweeper:
    sweeper = getattr(request.app.state, "filter_sweeper", None)
    if sweeper is None:  # pragma: no cover - defensive
        raise RuntimeError("Filter sweeper is not configured")
    return sweeper


def _require(found: bool, filter_id: str) -> dict:
    if not found:
        raise HTTPException(status_code=404, detail=f"Unknown filter: {filter_id}")
    return {"ok": True}


@router.get("/", response_model=List[FilterSet])
async def list_filters(
    active_only: bool = False,
    manager: FilterManager = Depends(get_filter_manager),
) -> List[FilterSet]:
    return manager.get_all_filters(active_only)


@router.post("/", response_model=FilterSet, status_code=201)
async def create_filter(
    payload: FilterCreatePayload,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    try:
        return manager.create_filter(payload.deny_list, payload.allow_list, payload.id)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.get("/stats", response_model=FilterStats)
async def filter_stats(
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterStats:
    return manager.get_stats()


@router.get("/search", response_model=List[FilterSet])
async def search_filters(
    q: str,
    manager: FilterManager = Depends(get_filter_manager),
) -> List[FilterSet]:
    return manager.search_filters(q)


@router.post("/check", response_model=CheckVerdict)
async def check_text(
    payload: CheckPayload,
    manager: FilterManager = Depends(get_filter_manager),
) -> CheckVerdict:
    return manager.check_string(payload.text, CheckOptions.lenient(payload.options))


@router.post("/sweep", response_model=dict)
async def sweep_now(
    sweeper: FilterSweeper = Depends(get_filter_sweeper),
) -> dict:
    """Remove expired deny entries immediately."""
    return {"removed": sweeper.run_once()}


@router.get("/{filter_id}", response_model=FilterSet)
async def read_filter(
    filter_id: str,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    filter_set = manager.get_filter(filter_id)
    if filter_set is None:
        raise HTTPException(status_code=404, detail=f"Unknown filter: {filter_id}")
    return filter_set


@router.delete("/{filter_id}", response_model=dict)
async def delete_filter(
    filter_id: str,
    manager: FilterManager = Depends(get_filter_manager),
) -> dict:
    return _require(manager.delete_filter(filter_id), filter_id)


@router.post("/{filter_id}/deny", response_model=FilterSet)
async def add_deny_items(
    filter_id: str,
    payload: DenyItemsPayload,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    _require(
        manager.add_to_deny_list(filter_id, payload.items, payload.ttl_seconds),
        filter_id,
    )
    return await read_filter(filter_id, manager)


@router.delete("/{filter_id}/deny", response_model=FilterSet)
async def remove_deny_items(
    filter_id: str,
    payload: ItemsPayload,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    _require(manager.remove_from_deny_list(filter_id, payload.items), filter_id)
    return await read_filter(filter_id, manager)


@router.post("/{filter_id}/allow", response_model=FilterSet)
async def add_allow_items(
    filter_id: str,
    payload: ItemsPayload,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    _require(manager.add_to_allow_list(filter_id, payload.items), filter_id)
    return await read_filter(filter_id, manager)


@router.delete("/{filter_id}/allow", response_model=FilterSet)
async def remove_allow_items(
    filter_id: str,
    payload: ItemsPayload,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    _require(manager.remove_from_allow_list(filter_id, payload.items), filter_id)
    return await read_filter(filter_id, manager)


@router.post("/{filter_id}/toggle", response_model=FilterSet)
async def toggle_filter(
    filter_id: str,
    payload: TogglePayload | None = None,
    manager: FilterManager = Depends(get_filter_manager),
) -> FilterSet:
    is_active = payload.is_active if payload is not None else None
    _require(manager.toggle_filter(filter_id, is_active), filter_id)
    return await read_filter(filter_id, manager)


__all__ = ["router", "get_filter_manager", "get_filter_sweeper"]
