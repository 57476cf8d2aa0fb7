from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from cross_trainer.db import Solve, SRSReview
from cross_trainer.db.solves import SqlSolveRepository
from cross_trainer.db.srs_items import (
    aggregate_items_by_depth,
    aggregate_reviews_since,
    count_due_srs_items,
    create_srs_item,
    delete_srs_item,
    ensure_aware,
    get_due_srs_items,
    get_srs_item_by_pair,
    list_srs_items,
    list_srs_reviews,
    record_srs_review,
    set_srs_item_active,
)


NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_srs_item_uses_initial_state(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            item = await create_srs_item(session, 42, 1, notes="tricky cross", now=NOW)

        async with session.begin():
            found = await get_srs_item_by_pair(session, 42, 1)
            missing = await get_srs_item_by_pair(session, 42, 2)

    assert found is not None
    assert found.id == item.id
    assert found.ease_factor == 2.5
    assert found.interval_days == 0
    assert found.next_review_at is None
    assert found.is_active is True
    assert found.times_correct == 0 and found.times_incorrect == 0
    assert found.notes == "tricky cross"
    assert missing is None


@pytest.mark.asyncio
async def test_unique_constraint_rejects_same_solve_and_depth(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            await create_srs_item(session, 7, 0, now=NOW)

        with pytest.raises(IntegrityError):
            async with session.begin():
                await create_srs_item(session, 7, 0, now=NOW)


@pytest.mark.asyncio
async def test_due_items_sort_unscheduled_first_then_by_due_time(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            overdue_recent = await create_srs_item(session, 1, 0, now=NOW - timedelta(days=5))
            overdue_recent.next_review_at = NOW - timedelta(hours=1)
            overdue_old = await create_srs_item(session, 2, 0, now=NOW - timedelta(days=4))
            overdue_old.next_review_at = NOW - timedelta(days=2)
            newest_unscheduled = await create_srs_item(session, 3, 0, now=NOW - timedelta(days=1))
            oldest_unscheduled = await create_srs_item(session, 4, 0, now=NOW - timedelta(days=3))
            future = await create_srs_item(session, 5, 0, now=NOW - timedelta(days=6))
            future.next_review_at = NOW + timedelta(days=1)
            inactive = await create_srs_item(session, 6, 0, now=NOW - timedelta(days=7))
            inactive.is_active = False

        due = await get_due_srs_items(session, NOW, limit=10)

    assert [item.id for item in due] == [
        oldest_unscheduled.id,
        newest_unscheduled.id,
        overdue_old.id,
        overdue_recent.id,
    ]
    assert future.id not in {item.id for item in due}
    assert inactive.id not in {item.id for item in due}


@pytest.mark.asyncio
async def test_due_items_respect_depth_filter_and_limit(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            for solve_id in range(1, 6):
                await create_srs_item(session, solve_id, solve_id % 2, now=NOW - timedelta(minutes=solve_id))

        depth_one = await get_due_srs_items(session, NOW, depth=1, limit=10)
        limited = await get_due_srs_items(session, NOW, limit=2)

    assert {item.depth for item in depth_one} == {1}
    assert len(depth_one) == 3
    assert len(limited) == 2


@pytest.mark.asyncio
async def test_list_srs_items_counts_filtered_total(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            for solve_id in range(1, 8):
                item = await create_srs_item(session, solve_id, 0, now=NOW + timedelta(minutes=solve_id))
                if solve_id % 3 == 0:
                    item.is_active = False

        page, total = await list_srs_items(session, limit=3, offset=0)
        active_page, active_total = await list_srs_items(session, active_only=True, limit=10)

    assert total == 7
    assert [item.solve_id for item in page] == [7, 6, 5]
    assert active_total == 5
    assert all(item.is_active for item in active_page)


@pytest.mark.asyncio
async def test_record_review_appends_history_and_updates_state(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            item = await create_srs_item(session, 11, 2, now=NOW)
        async with session.begin():
            await record_srs_review(
                session,
                item,
                quality=4,
                ease_factor=2.5,
                interval_days=1,
                next_review_at=NOW + timedelta(days=1),
                times_correct=1,
                times_incorrect=0,
                response_time_ms=5400,
                user_solution="D R' F R",
                now=NOW,
            )

        async with session.begin():
            reviews = await list_srs_reviews(session, item.id)

    assert item.interval_days == 1
    assert ensure_aware(item.next_review_at) == NOW + timedelta(days=1)
    assert len(reviews) == 1
    assert reviews[0].quality == 4
    assert reviews[0].response_time_ms == 5400
    assert reviews[0].user_solution == "D R' F R"


@pytest.mark.asyncio
async def test_delete_srs_item_removes_history(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            item = await create_srs_item(session, 12, 0, now=NOW)
            await record_srs_review(
                session,
                item,
                quality=1,
                ease_factor=1.96,
                interval_days=1,
                next_review_at=NOW + timedelta(days=1),
                times_correct=0,
                times_incorrect=1,
                now=NOW,
            )
        async with session.begin():
            await delete_srs_item(session, item)

        async with session.begin():
            remaining = (await session.execute(select(func.count()).select_from(SRSReview))).scalar_one()
            gone = await get_srs_item_by_pair(session, 12, 0)

    assert remaining == 0
    assert gone is None


@pytest.mark.asyncio
async def test_set_srs_item_active_reports_changes(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            item = await create_srs_item(session, 13, 3, now=NOW)
            unchanged = await set_srs_item_active(session, item, True, now=NOW)
            changed = await set_srs_item_active(session, item, False, now=NOW)

    assert unchanged is False
    assert changed is True
    assert item.is_active is False


@pytest.mark.asyncio
async def test_aggregates_cover_depths_due_counts_and_review_window(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            first = await create_srs_item(session, 1, 0, now=NOW)
            second = await create_srs_item(session, 2, 0, now=NOW)
            second.is_active = False
            third = await create_srs_item(session, 3, 2, now=NOW)
            third.next_review_at = NOW + timedelta(days=3)
            await record_srs_review(
                session,
                first,
                quality=5,
                ease_factor=2.6,
                interval_days=1,
                next_review_at=NOW + timedelta(hours=6),
                times_correct=1,
                times_incorrect=0,
                response_time_ms=3000,
                now=NOW - timedelta(hours=18),
            )
            session.add(
                SRSReview(
                    srs_item_id=third.id,
                    quality=2,
                    response_time_ms=None,
                    reviewed_at=NOW - timedelta(days=1),
                )
            )
            session.add(SRSReview(srs_item_id=third.id, quality=4, reviewed_at=NOW - timedelta(days=30)))

        async with session.begin():
            by_depth = await aggregate_items_by_depth(session)
            due_now = await count_due_srs_items(session, NOW)
            due_today = await count_due_srs_items(session, NOW.replace(hour=23, minute=59))
            window = await aggregate_reviews_since(session, NOW - timedelta(days=7))

    assert [(row.depth, row.items, row.active_items) for row in by_depth] == [(0, 2, 1), (2, 1, 1)]
    assert by_depth[0].avg_ease == pytest.approx((2.6 + 2.5) / 2)
    assert due_now == 0
    assert due_today == 1
    assert window.total == 2
    assert window.correct == 1
    assert window.avg_response_time_ms == pytest.approx(3000)


@pytest.mark.asyncio
async def test_solve_repository_looks_up_single_and_many(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    Solve(id=1, solver="Feliks Zemdegs", result=4.73, competition="Melbourne Winter Open 2016"),
                    Solve(id=2, solver="Max Park", result=3.13, scramble="D' R' D2 F2"),
                ]
            )

    repository = SqlSolveRepository(session_factory)

    single = await repository.get(1)
    assert single is not None
    assert single.solver == "Feliks Zemdegs"
    assert await repository.get(99) is None

    many = await repository.get_many([2, 1, 2, 99])
    assert sorted(many) == [1, 2]
    assert many[2].scramble == "D' R' D2 F2"
    assert await repository.get_many([]) == {}
