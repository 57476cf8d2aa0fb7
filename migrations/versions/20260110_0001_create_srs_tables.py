"""Create the solve corpus and spaced-repetition tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260110_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "solves",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("solver", sa.String(length=255), nullable=True),
        sa.Column("result", sa.Float(), nullable=True),
        sa.Column("competition", sa.String(length=255), nullable=True),
        sa.Column("solve_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scramble", sa.Text(), nullable=True),
        sa.Column("reconstruction", sa.Text(), nullable=True),
    )

    op.create_table(
        "srs_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("solve_id", sa.Integer(), nullable=False),
        sa.Column("depth", sa.SmallInteger(), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("interval_days", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("times_correct", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("times_incorrect", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("solve_id", "depth", name="uq_srs_items_solve_depth"),
        sa.CheckConstraint("depth BETWEEN 0 AND 3", name="ck_srs_items_depth"),
    )
    op.create_index("ix_srs_items_solve_id", "srs_items", ("solve_id",))
    op.create_index(
        "ix_srs_items_is_active_next_review_at",
        "srs_items",
        ("is_active", "next_review_at"),
    )

    op.create_table(
        "srs_reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("srs_item_id", sa.Integer(), nullable=False),
        sa.Column("quality", sa.SmallInteger(), nullable=False),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column(
            "reviewed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("user_solution", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ("srs_item_id",),
            ("srs_items.id",),
            name="fk_srs_reviews_srs_item_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("quality BETWEEN 0 AND 5", name="ck_srs_reviews_quality"),
    )
    op.create_index("ix_srs_reviews_srs_item_id", "srs_reviews", ("srs_item_id",))
    op.create_index("ix_srs_reviews_reviewed_at", "srs_reviews", ("reviewed_at",))


def downgrade() -> None:
    op.drop_index("ix_srs_reviews_reviewed_at", table_name="srs_reviews")
    op.drop_index("ix_srs_reviews_srs_item_id", table_name="srs_reviews")
    op.drop_table("srs_reviews")
    op.drop_index("ix_srs_items_is_active_next_review_at", table_name="srs_items")
    op.drop_index("ix_srs_items_solve_id", table_name="srs_items")
    op.drop_table("srs_items")
    op.drop_table("solves")
