"""Transactional operations of the spaced-repetition engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cross_trainer.db import SRSItem, SRSReview
from cross_trainer.db.solves import SolveRecord, SolveRepository
from cross_trainer.db.srs_items import (
    aggregate_items_by_depth,
    aggregate_reviews_since,
    count_due_srs_items,
    create_srs_item,
    delete_srs_item,
    get_due_srs_items,
    get_srs_item,
    get_srs_item_by_pair,
    list_srs_items,
    list_srs_reviews,
    record_srs_review,
    set_srs_item_active,
)
from cross_trainer.srs.depth import Depth, parse_depth
from cross_trainer.srs.errors import (
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    SRSError,
    StorageError,
)
from cross_trainer.srs.scheduler import SchedulingState, schedule, validate_quality


LOGGER = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
DEFAULT_DUE_LIMIT = 10
DEFAULT_STATS_WINDOW_DAYS = 7
DEFAULT_REVIEW_HISTORY_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ItemPage:
    """A page of SRS items plus the total matching the same filter."""

    items: List[SRSItem]
    total: int
    solves: Dict[int, SolveRecord] = field(default_factory=dict)


@dataclass(slots=True)
class DepthStats:
    depth: int
    label: str
    items: int
    active_items: int
    avg_ease: float


@dataclass(slots=True)
class SRSStats:
    """Aggregate progress figures derived from stored items and reviews."""

    total_items: int
    active_items: int
    due_today: int
    reviews_last_7_days: int
    retention_rate: Optional[float]
    average_response_time_ms: Optional[float]
    window_days: int = DEFAULT_STATS_WINDOW_DAYS
    by_depth: List[DepthStats] = field(default_factory=list)


def _validate_limit(value: object, name: str = "limit") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer.")
    if value < 1 or value > MAX_PAGE_SIZE:
        raise InvalidInputError(f"{name} must be between 1 and {MAX_PAGE_SIZE}.")
    return value


def _validate_optional_depth(depth: object) -> Optional[Depth]:
    if depth is None:
        return None
    return parse_depth(depth)


class SRSService:
    """Coordinates scheduling and persistence for SRS items.

    Every public operation runs in its own database transaction; nothing is
    cached between calls, so due-ness is always recomputed from stored state.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        solve_repository: SolveRepository,
        *,
        default_due_limit: int = DEFAULT_DUE_LIMIT,
        stats_window_days: int = DEFAULT_STATS_WINDOW_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session_factory = session_factory
        self._solves = solve_repository
        self._default_due_limit = default_due_limit
        self._stats_window_days = stats_window_days
        self._clock = clock or _utcnow

    def _now(self) -> datetime:
        return self._clock().astimezone(timezone.utc)

    @asynccontextmanager
    async def _transaction(
        self,
        operation: str,
        on_integrity_error: Optional[SRSError] = None,
    ) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as exc:
            if on_integrity_error is None:
                LOGGER.exception("Integrity violation during %s.", operation)
                raise StorageError(f"Storage failure during {operation}.") from exc
            raise on_integrity_error from exc
        except SQLAlchemyError as exc:
            LOGGER.exception("Storage failure during %s.", operation)
            raise StorageError(f"Storage failure during {operation}.") from exc

    async def add_item(
        self,
        solve_id: int,
        depth: int,
        notes: Optional[str] = None,
    ) -> SRSItem:
        """Start tracking a solve at the given depth."""
        depth = parse_depth(depth)

        try:
            solve = await self._solves.get(solve_id)
        except SQLAlchemyError as exc:
            LOGGER.exception("Solve lookup failed for solve %s.", solve_id)
            raise StorageError("Storage failure while looking up the solve.") from exc
        if solve is None:
            raise NotFoundError(f"Solve {solve_id} not found.")

        duplicate = DuplicateError(f"Solve {solve_id} is already in SRS at depth {int(depth)}.")
        async with self._transaction("add_item", on_integrity_error=duplicate) as session:
            if await get_srs_item_by_pair(session, solve_id, int(depth)) is not None:
                raise duplicate
            item = await create_srs_item(session, solve_id, int(depth), notes=notes, now=self._now())

        LOGGER.info("Added SRS item %s for solve %s at depth %s.", item.id, solve_id, int(depth))
        return item

    async def remove_item(self, item_id: int) -> None:
        async with self._transaction("remove_item") as session:
            item = await get_srs_item(session, item_id, for_update=True)
            if item is None:
                raise NotFoundError(f"SRS item {item_id} not found.")
            await delete_srs_item(session, item)

        LOGGER.info("Removed SRS item %s.", item_id)

    async def remove_by_depth(self, solve_id: int, depth: int) -> None:
        """Remove the item identified by its natural (solve, depth) key."""
        depth = parse_depth(depth)
        async with self._transaction("remove_by_depth") as session:
            item = await get_srs_item_by_pair(session, solve_id, int(depth))
            if item is None:
                raise NotFoundError(f"Solve {solve_id} has no SRS item at depth {int(depth)}.")
            item_id = item.id
            await delete_srs_item(session, item)

        LOGGER.info("Removed SRS item %s (solve %s, depth %s).", item_id, solve_id, int(depth))

    async def set_active(self, item_id: int, is_active: bool) -> SRSItem:
        if not isinstance(is_active, bool):
            raise InvalidInputError("is_active must be a boolean.")

        async with self._transaction("set_active") as session:
            item = await get_srs_item(session, item_id, for_update=True)
            if item is None:
                raise NotFoundError(f"SRS item {item_id} not found.")
            changed = await set_srs_item_active(session, item, is_active, now=self._now())

        if changed:
            LOGGER.info("SRS item %s is now %s.", item_id, "active" if is_active else "inactive")
        return item

    async def get_item(self, item_id: int) -> SRSItem:
        async with self._transaction("get_item") as session:
            item = await get_srs_item(session, item_id)
        if item is None:
            raise NotFoundError(f"SRS item {item_id} not found.")
        return item

    async def list_items(
        self,
        *,
        active_only: bool = False,
        depth: Optional[int] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> ItemPage:
        depth_filter = _validate_optional_depth(depth)
        limit = _validate_limit(limit)
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise InvalidInputError("offset must be a non-negative integer.")

        async with self._transaction("list_items") as session:
            items, total = await list_srs_items(
                session,
                active_only=bool(active_only),
                depth=None if depth_filter is None else int(depth_filter),
                limit=limit,
                offset=offset,
            )
        try:
            solves = await self._solves.get_many(item.solve_id for item in items)
        except SQLAlchemyError as exc:
            LOGGER.exception("Solve lookup failed while listing SRS items.")
            raise StorageError("Storage failure while looking up solves.") from exc
        LOGGER.debug("Listed %s of %s SRS items.", len(items), total)
        return ItemPage(items=list(items), total=total, solves=solves)

    async def get_due(self, depth: Optional[int] = None, limit: Optional[int] = None) -> List[SRSItem]:
        """Return active items that are due now, most overdue first."""
        depth_filter = _validate_optional_depth(depth)
        limit = _validate_limit(self._default_due_limit if limit is None else limit)
        now = self._now()

        async with self._transaction("get_due") as session:
            items = await get_due_srs_items(
                session,
                now,
                depth=None if depth_filter is None else int(depth_filter),
                limit=limit,
            )
        LOGGER.debug("Found %s due SRS items.", len(items))
        return list(items)

    async def record_review(
        self,
        item_id: int,
        quality: int,
        response_time_ms: Optional[int] = None,
        notes: Optional[str] = None,
        user_solution: Optional[str] = None,
    ) -> SRSItem:
        """Apply a review outcome and append it to the item's history atomically.

        Reviewing an inactive item is allowed and leaves it inactive.
        """
        validate_quality(quality)
        if response_time_ms is not None and (
            isinstance(response_time_ms, bool)
            or not isinstance(response_time_ms, int)
            or response_time_ms < 0
        ):
            raise InvalidInputError("response_time_ms must be a non-negative integer.")

        async with self._transaction("record_review") as session:
            item = await get_srs_item(session, item_id, for_update=True)
            if item is None:
                raise NotFoundError(f"SRS item {item_id} not found.")

            now = self._now()
            state = SchedulingState(
                ease_factor=item.ease_factor,
                interval_days=item.interval_days,
                times_correct=item.times_correct,
                times_incorrect=item.times_incorrect,
            )
            result = schedule(state, quality, response_time_ms, reviewed_at=now)
            await record_srs_review(
                session,
                item,
                quality=quality,
                ease_factor=result.ease_factor,
                interval_days=result.interval_days,
                next_review_at=result.next_review_at,
                times_correct=result.times_correct,
                times_incorrect=result.times_incorrect,
                response_time_ms=response_time_ms,
                notes=notes,
                user_solution=user_solution,
                now=now,
            )

        LOGGER.info(
            "Recorded review for SRS item %s: quality=%s interval=%sd ease=%.2f.",
            item_id,
            quality,
            result.interval_days,
            result.ease_factor,
        )
        return item

    async def list_reviews(
        self,
        item_id: int,
        limit: int = DEFAULT_REVIEW_HISTORY_LIMIT,
    ) -> List[SRSReview]:
        limit = _validate_limit(limit)
        async with self._transaction("list_reviews") as session:
            if await get_srs_item(session, item_id) is None:
                raise NotFoundError(f"SRS item {item_id} not found.")
            reviews = await list_srs_reviews(session, item_id, limit=limit)
        return list(reviews)

    async def get_stats(self) -> SRSStats:
        now = self._now()
        end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=999999)
        window_start = now - timedelta(days=self._stats_window_days)

        async with self._transaction("get_stats") as session:
            depth_rows = await aggregate_items_by_depth(session)
            due_today = await count_due_srs_items(session, end_of_day)
            window = await aggregate_reviews_since(session, window_start)

        retention_rate = None
        if window.total:
            retention_rate = round(window.correct / window.total * 100, 1)
        average_response = None
        if window.avg_response_time_ms is not None:
            average_response = round(window.avg_response_time_ms, 1)

        return SRSStats(
            total_items=sum(row.items for row in depth_rows),
            active_items=sum(row.active_items for row in depth_rows),
            due_today=due_today,
            reviews_last_7_days=window.total,
            retention_rate=retention_rate,
            average_response_time_ms=average_response,
            window_days=self._stats_window_days,
            by_depth=[
                DepthStats(
                    depth=row.depth,
                    label=Depth(row.depth).label,
                    items=row.items,
                    active_items=row.active_items,
                    avg_ease=round(row.avg_ease, 2),
                )
                for row in depth_rows
            ],
        )
