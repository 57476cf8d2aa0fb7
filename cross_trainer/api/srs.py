"""HTTP routes of the SRS engine, mounted under ``/api/srs``."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request

from cross_trainer.api.models import (
    AddItemRequest,
    ItemListResponse,
    OkResponse,
    ReviewRequest,
    SetActiveRequest,
    SRSItemResponse,
    SRSListItemResponse,
    SRSReviewResponse,
    StatsResponse,
)
from cross_trainer.db import SRSItem
from cross_trainer.db.solves import SolveRecord
from cross_trainer.srs import SRSService

router = APIRouter(tags=["srs"])


def _service(request: Request) -> SRSService:
    return request.app.state.srs_service


def _list_entry(item: SRSItem, solve: Optional[SolveRecord]) -> SRSListItemResponse:
    entry = SRSListItemResponse.model_validate(item)
    if solve is not None:
        entry.solver = solve.solver
        entry.result = solve.result
        entry.competition = solve.competition
        entry.scramble = solve.scramble
    return entry


@router.get("/due", response_model=list[SRSItemResponse], summary="Items due for review")
async def get_due(request: Request, depth: Optional[int] = None, limit: Optional[int] = None) -> list[SRSItemResponse]:
    """Return active items that are due now, never-reviewed and most overdue first."""
    items = await _service(request).get_due(depth=depth, limit=limit)
    return [SRSItemResponse.model_validate(item) for item in items]


@router.post("/review", response_model=SRSItemResponse, summary="Record a review outcome")
async def record_review(request: Request, req: ReviewRequest) -> SRSItemResponse:
    item = await _service(request).record_review(
        req.srs_item_id,
        req.quality,
        response_time_ms=req.response_time_ms,
        notes=req.notes,
        user_solution=req.user_solution,
    )
    return SRSItemResponse.model_validate(item)


@router.post("/add", response_model=SRSItemResponse, status_code=201, summary="Add a solve at a depth")
async def add_item(request: Request, req: AddItemRequest) -> SRSItemResponse:
    item = await _service(request).add_item(req.solve_id, req.depth, notes=req.notes)
    return SRSItemResponse.model_validate(item)


@router.get("/item/{item_id}", response_model=SRSItemResponse)
async def get_item(request: Request, item_id: int) -> SRSItemResponse:
    item = await _service(request).get_item(item_id)
    return SRSItemResponse.model_validate(item)


@router.get("/item/{item_id}/reviews", response_model=list[SRSReviewResponse], summary="Review history, newest first")
async def list_reviews(request: Request, item_id: int, limit: int = 50) -> list[SRSReviewResponse]:
    reviews = await _service(request).list_reviews(item_id, limit=limit)
    return [SRSReviewResponse.model_validate(review) for review in reviews]


@router.patch("/item/{item_id}", response_model=SRSItemResponse, summary="Activate or deactivate an item")
async def set_active(request: Request, item_id: int, req: SetActiveRequest) -> SRSItemResponse:
    item = await _service(request).set_active(item_id, req.is_active)
    return SRSItemResponse.model_validate(item)


@router.delete("/item/{item_id}", response_model=OkResponse)
async def remove_item(request: Request, item_id: int) -> OkResponse:
    await _service(request).remove_item(item_id)
    return OkResponse()


@router.delete("/solve/{solve_id}/depth/{depth}", response_model=OkResponse)
async def remove_by_depth(request: Request, solve_id: int, depth: int) -> OkResponse:
    await _service(request).remove_by_depth(solve_id, depth)
    return OkResponse()


@router.get("/items", response_model=ItemListResponse, summary="Paginated item listing")
async def list_items(
    request: Request,
    active_only: bool = False,
    depth: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
) -> ItemListResponse:
    """Return one page of items with their solve details.

    ``total`` counts every item matching the same filter, not just this page.
    """
    page = await _service(request).list_items(active_only=active_only, depth=depth, limit=limit, offset=offset)
    return ItemListResponse(
        items=[_list_entry(item, page.solves.get(item.solve_id)) for item in page.items],
        total=page.total,
    )


@router.get("/stats", response_model=StatsResponse, summary="Progress statistics")
async def get_stats(request: Request) -> StatsResponse:
    stats = await _service(request).get_stats()
    return StatsResponse.model_validate(stats)
