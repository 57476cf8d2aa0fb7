import logging
import os
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


class Solve(Base):
    """A historical solve from the external corpus. The engine only reads it."""

    __tablename__ = "solves"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    solver: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    result: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    competition: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    solve_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    scramble: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reconstruction: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class SRSItem(Base):
    """One scheduled reviewable unit: a solve studied up to a given depth."""

    __tablename__ = "srs_items"
    __table_args__ = (
        UniqueConstraint("solve_id", "depth", name="uq_srs_items_solve_depth"),
        CheckConstraint("depth BETWEEN 0 AND 3", name="ck_srs_items_depth"),
        Index("ix_srs_items_is_active_next_review_at", "is_active", "next_review_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Plain reference into the solve corpus; deleting an item never touches the solve.
    solve_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    depth: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    ease_factor: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=2.5,
        server_default=text("2.5"),
    )
    interval_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    next_review_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    times_correct: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    times_incorrect: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        server_onupdate=func.now(),
    )
    reviews: Mapped[list["SRSReview"]] = relationship(
        "SRSReview",
        back_populates="srs_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SRSReview(Base):
    """Append-only history of review outcomes for an SRS item."""

    __tablename__ = "srs_reviews"
    __table_args__ = (
        CheckConstraint("quality BETWEEN 0 AND 5", name="ck_srs_reviews_quality"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    srs_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("srs_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quality: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    response_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reviewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    user_solution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    srs_item: Mapped["SRSItem"] = relationship("SRSItem", back_populates="reviews")


_TRUTHY = frozenset({"1", "true", "yes", "on"})
_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def get_database_url() -> str:
    """Return ``DATABASE_URL`` with ``$VAR`` references expanded.

    The SRS tables share the database that holds the solve corpus.
    """
    raw_url = os.getenv("DATABASE_URL")
    if not raw_url:
        raise RuntimeError("DATABASE_URL must point at the database holding the solves and SRS tables.")
    return os.path.expandvars(raw_url)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create the process-wide async engine; ``SQLALCHEMY_ECHO`` turns on SQL logging."""
    url = make_url(get_database_url())
    LOGGER.debug("Creating database engine for %s.", url.render_as_string(hide_password=True))
    return create_async_engine(url, echo=_env_flag("SQLALCHEMY_ECHO", False))


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # Items are returned to callers after commit, so attributes must stay loaded.
    return async_sessionmaker(get_engine(), expire_on_commit=False)


def _alembic_config() -> Config:
    config = Config(str(_PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(_PROJECT_ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", get_database_url())
    return config


def run_migrations_if_needed(target: str = "head") -> bool:
    """Upgrade the SRS schema to ``target`` unless ``RUN_MIGRATIONS_ON_STARTUP`` is off.

    Returns whether an upgrade was attempted.
    """
    if not _env_flag("RUN_MIGRATIONS_ON_STARTUP", True):
        LOGGER.info("RUN_MIGRATIONS_ON_STARTUP is disabled; leaving the SRS schema untouched.")
        return False

    LOGGER.info("Upgrading the SRS schema to %s.", target)
    command.upgrade(_alembic_config(), target)
    LOGGER.info("SRS schema is at %s.", target)
    return True
