"""Request and response models for the SRS HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from cross_trainer.db.srs_items import ensure_aware


class SRSItemResponse(BaseModel):
    """Scheduling state of one SRS item."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    solve_id: int
    depth: int
    ease_factor: float
    interval_days: int
    next_review_at: Optional[datetime] = None
    times_correct: int
    times_incorrect: int
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime

    @field_validator("next_review_at", "created_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)


class SRSReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    srs_item_id: int
    quality: int
    response_time_ms: Optional[int] = None
    reviewed_at: datetime
    user_solution: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("reviewed_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class AddItemRequest(BaseModel):
    solve_id: int
    depth: int
    notes: Optional[str] = None


class SetActiveRequest(BaseModel):
    is_active: bool


class ReviewRequest(BaseModel):
    """A review outcome submitted by the trainer UI.

    - quality: 0-5 self-assessed score, 3 and above counts as a success
    - response_time_ms: time taken to plan the solution, stored for analytics
    """

    srs_item_id: int
    quality: int
    response_time_ms: Optional[int] = None
    notes: Optional[str] = None
    user_solution: Optional[str] = None


class SRSListItemResponse(SRSItemResponse):
    """An item row enriched with display details of its solve, when the solve is known."""

    solver: Optional[str] = None
    result: Optional[float] = None
    competition: Optional[str] = None
    scramble: Optional[str] = None


class ItemListResponse(BaseModel):
    items: list[SRSListItemResponse]
    total: int


class DepthStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    depth: int
    label: str
    items: int
    active_items: int
    avg_ease: float


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_items: int
    active_items: int
    due_today: int
    reviews_last_7_days: int
    retention_rate: Optional[float] = None
    average_response_time_ms: Optional[float] = None
    window_days: int
    by_depth: list[DepthStatsResponse] = []


class OkResponse(BaseModel):
    ok: bool = True
