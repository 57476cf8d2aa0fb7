"""Read-only access to the external solve corpus."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import Solve


@dataclass(slots=True)
class SolveRecord:
    """Display-level view of a historical solve."""

    id: int
    solver: Optional[str]
    result: Optional[float]
    competition: Optional[str]
    solve_date: Optional[datetime]
    scramble: Optional[str]

    @classmethod
    def from_model(cls, solve: Solve) -> "SolveRecord":
        return cls(
            id=solve.id,
            solver=solve.solver,
            result=solve.result,
            competition=solve.competition,
            solve_date=solve.solve_date,
            scramble=solve.scramble,
        )


class SolveRepository(Protocol):
    """Lookup capability over the solve corpus."""

    async def get(self, solve_id: int) -> Optional[SolveRecord]:
        ...

    async def get_many(self, solve_ids: Iterable[int]) -> Dict[int, SolveRecord]:
        ...


class SqlSolveRepository:
    """Solve repository backed by the ``solves`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, solve_id: int) -> Optional[SolveRecord]:
        async with self._session_factory() as session:
            solve = await session.get(Solve, solve_id)
            if solve is None:
                return None
            return SolveRecord.from_model(solve)

    async def get_many(self, solve_ids: Iterable[int]) -> Dict[int, SolveRecord]:
        """Return the known solves among ``solve_ids`` keyed by id; unknown ids are omitted."""
        ids = sorted(set(solve_ids))
        if not ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(select(Solve).where(Solve.id.in_(ids)))
            return {solve.id: SolveRecord.from_model(solve) for solve in result.scalars()}
