"""Helpers for working with SRS item persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import ColumnElement, case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import SRSItem, SRSReview


DEFAULT_EASE_FACTOR = 2.5
PASSING_QUALITY = 3


@dataclass(slots=True)
class DepthAggregate:
    depth: int
    items: int
    active_items: int
    avg_ease: float


@dataclass(slots=True)
class ReviewWindowAggregate:
    """Review counters over a trailing time window."""

    total: int
    correct: int
    avg_response_time_ms: Optional[float]


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps coming back from the database as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def create_srs_item(
    session: AsyncSession,
    solve_id: int,
    depth: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SRSItem:
    """Insert a never-reviewed item for the (solve, depth) pair."""
    if now is None:
        now = datetime.now(timezone.utc)

    item = SRSItem(
        solve_id=solve_id,
        depth=depth,
        ease_factor=DEFAULT_EASE_FACTOR,
        interval_days=0,
        next_review_at=None,
        times_correct=0,
        times_incorrect=0,
        is_active=True,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
    session.add(item)
    await session.flush()
    return item


async def get_srs_item(
    session: AsyncSession,
    item_id: int,
    *,
    for_update: bool = False,
) -> Optional[SRSItem]:
    stmt = select(SRSItem).where(SRSItem.id == item_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalars().first()


async def get_srs_item_by_pair(
    session: AsyncSession,
    solve_id: int,
    depth: int,
) -> Optional[SRSItem]:
    stmt = select(SRSItem).where(SRSItem.solve_id == solve_id, SRSItem.depth == depth)
    result = await session.execute(stmt)
    return result.scalars().first()


async def delete_srs_item(session: AsyncSession, item: SRSItem) -> None:
    """Hard-delete an item together with its review history."""
    await session.execute(delete(SRSReview).where(SRSReview.srs_item_id == item.id))
    await session.delete(item)
    await session.flush()


async def set_srs_item_active(
    session: AsyncSession,
    item: SRSItem,
    is_active: bool,
    now: Optional[datetime] = None,
) -> bool:
    """Flip the activation flag. Returns whether anything changed."""
    if item.is_active == is_active:
        return False
    if now is None:
        now = datetime.now(timezone.utc)
    item.is_active = is_active
    item.updated_at = now
    await session.flush()
    return True


async def get_due_srs_items(
    session: AsyncSession,
    now: datetime,
    depth: Optional[int] = None,
    limit: int = 10,
) -> Sequence[SRSItem]:
    """Return active items whose review time has arrived, most overdue first.

    Never-reviewed items (``next_review_at`` is NULL) sort before everything
    else; equal due times fall back to creation order.
    """
    stmt = (
        select(SRSItem)
        .where(
            SRSItem.is_active.is_(True),
            (SRSItem.next_review_at.is_(None)) | (SRSItem.next_review_at <= now),
        )
        .order_by(
            SRSItem.next_review_at.asc().nulls_first(),
            SRSItem.created_at.asc(),
            SRSItem.id.asc(),
        )
        .limit(limit)
    )
    if depth is not None:
        stmt = stmt.where(SRSItem.depth == depth)
    result = await session.execute(stmt)
    return result.scalars().all()


def _list_conditions(active_only: bool, depth: Optional[int]) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if active_only:
        conditions.append(SRSItem.is_active.is_(True))
    if depth is not None:
        conditions.append(SRSItem.depth == depth)
    return conditions


async def list_srs_items(
    session: AsyncSession,
    *,
    active_only: bool = False,
    depth: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[Sequence[SRSItem], int]:
    """Return one page of items (newest first) and the total matching the same filter."""
    conditions = _list_conditions(active_only, depth)

    page_stmt = (
        select(SRSItem)
        .where(*conditions)
        .order_by(SRSItem.created_at.desc(), SRSItem.id.desc())
        .limit(limit)
        .offset(offset)
    )
    count_stmt = select(func.count()).select_from(SRSItem).where(*conditions)

    items = (await session.execute(page_stmt)).scalars().all()
    total = (await session.execute(count_stmt)).scalar_one()
    return items, int(total)


async def record_srs_review(
    session: AsyncSession,
    item: SRSItem,
    *,
    quality: int,
    ease_factor: float,
    interval_days: int,
    next_review_at: datetime,
    times_correct: int,
    times_incorrect: int,
    response_time_ms: Optional[int] = None,
    notes: Optional[str] = None,
    user_solution: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SRSReview:
    """Persist new scheduling fields and append the matching review event."""
    if now is None:
        now = datetime.now(timezone.utc)

    item.ease_factor = ease_factor
    item.interval_days = interval_days
    item.next_review_at = next_review_at
    item.times_correct = times_correct
    item.times_incorrect = times_incorrect
    item.updated_at = now

    review = SRSReview(
        srs_item_id=item.id,
        quality=quality,
        response_time_ms=response_time_ms,
        reviewed_at=now,
        user_solution=user_solution,
        notes=notes,
    )
    session.add(review)
    await session.flush()
    return review


async def list_srs_reviews(
    session: AsyncSession,
    item_id: int,
    limit: int = 50,
) -> Sequence[SRSReview]:
    stmt = (
        select(SRSReview)
        .where(SRSReview.srs_item_id == item_id)
        .order_by(SRSReview.reviewed_at.desc(), SRSReview.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def aggregate_items_by_depth(session: AsyncSession) -> list[DepthAggregate]:
    stmt = (
        select(
            SRSItem.depth,
            func.count(SRSItem.id),
            func.sum(case((SRSItem.is_active.is_(True), 1), else_=0)),
            func.avg(SRSItem.ease_factor),
        )
        .group_by(SRSItem.depth)
        .order_by(SRSItem.depth)
    )
    result = await session.execute(stmt)
    return [
        DepthAggregate(
            depth=int(depth),
            items=int(items),
            active_items=int(active_items or 0),
            avg_ease=float(avg_ease or 0.0),
        )
        for depth, items, active_items, avg_ease in result.all()
    ]


async def count_due_srs_items(session: AsyncSession, cutoff: datetime) -> int:
    """Count active items that are unscheduled or due at or before ``cutoff``."""
    stmt = (
        select(func.count())
        .select_from(SRSItem)
        .where(
            SRSItem.is_active.is_(True),
            (SRSItem.next_review_at.is_(None)) | (SRSItem.next_review_at <= cutoff),
        )
    )
    return int((await session.execute(stmt)).scalar_one())


async def aggregate_reviews_since(session: AsyncSession, since: datetime) -> ReviewWindowAggregate:
    stmt = select(
        func.count(SRSReview.id),
        func.sum(case((SRSReview.quality >= PASSING_QUALITY, 1), else_=0)),
        func.avg(SRSReview.response_time_ms),
    ).where(SRSReview.reviewed_at >= since)
    total, correct, avg_response = (await session.execute(stmt)).one()
    return ReviewWindowAggregate(
        total=int(total or 0),
        correct=int(correct or 0),
        avg_response_time_ms=float(avg_response) if avg_response is not None else None,
    )
