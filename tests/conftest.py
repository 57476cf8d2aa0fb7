from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from cross_trainer.db import Base
from cross_trainer.db.solves import SolveRecord
from cross_trainer.srs import SRSService


START = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubSolveRepository:
    def __init__(self, solve_ids: Iterable[int] = ()) -> None:
        self._records = {
            solve_id: SolveRecord(
                id=solve_id,
                solver="Tester",
                result=7.5,
                competition=None,
                solve_date=None,
                scramble="R U R' U'",
            )
            for solve_id in solve_ids
        }
        self.lookups: list[int] = []

    async def get(self, solve_id: int) -> Optional[SolveRecord]:
        self.lookups.append(solve_id)
        return self._records.get(solve_id)

    async def get_many(self, solve_ids: Iterable[int]) -> Dict[int, SolveRecord]:
        return {solve_id: self._records[solve_id] for solve_id in solve_ids if solve_id in self._records}


class FailingSession:
    """Session stand-in whose connection attempt fails."""

    async def __aenter__(self) -> "FailingSession":
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    async def __aexit__(self, *exc_info) -> None:
        return None


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def solves() -> StubSolveRepository:
    return StubSolveRepository(range(1, 21))


@pytest.fixture
def service(session_factory, solves, clock) -> SRSService:
    return SRSService(session_factory, solves, clock=clock)
