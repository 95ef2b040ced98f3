"""Initial schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

This migration creates the complete Willing Tree database schema:
- Extensions: uuid-ossp, citext
- Enums: subscription_status, innermost_status, week_phase
- Tables: users, innermosts, willing_boxes, weekly_scores
- Triggers: updated_at auto-update function and triggers
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SLOT_COLUMNS = [
    "partner_a_wish_list",
    "partner_b_wish_list",
    "partner_a_willing_list",
    "partner_b_willing_list",
    "partner_a_guesses",
    "partner_b_guesses",
]


def upgrade() -> None:
    # ==========================================================================
    # EXTENSIONS
    # ==========================================================================
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute('CREATE EXTENSION IF NOT EXISTS "citext"')

    # ==========================================================================
    # ENUMS
    # ==========================================================================
    subscription_status = postgresql.ENUM(
        "free", "premium", "expired",
        name="subscription_status",
        create_type=True,
    )
    subscription_status.create(op.get_bind(), checkfirst=True)

    innermost_status = postgresql.ENUM(
        "pending", "active", "archived",
        name="innermost_status",
        create_type=True,
    )
    innermost_status.create(op.get_bind(), checkfirst=True)

    week_phase = postgresql.ENUM(
        "planting_trees", "selecting_willing", "guessing", "complete",
        name="week_phase",
        create_type=True,
    )
    week_phase.create(op.get_bind(), checkfirst=True)

    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("email", postgresql.CITEXT(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "subscription_status",
            postgresql.ENUM(name="subscription_status", create_type=False),
            server_default="free",
            nullable=False,
        ),
        sa.Column("subscription_end_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # ==========================================================================
    # INNERMOSTS TABLE
    # ==========================================================================
    op.create_table(
        "innermosts",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("partner_a_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("partner_b_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("invite_email", postgresql.CITEXT(), nullable=False),
        sa.Column("invite_message", sa.Text(), nullable=True),
        sa.Column(
            "status",
            postgresql.ENUM(name="innermost_status", create_type=False),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("current_week", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["partner_a_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["partner_b_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("partner_b_id IS NULL OR partner_b_id <> partner_a_id", name="distinct_partners"),
        sa.CheckConstraint("current_week >= 0", name="valid_current_week"),
    )
    op.create_index("idx_innermosts_partner_a", "innermosts", ["partner_a_id"])
    op.create_index("idx_innermosts_partner_b", "innermosts", ["partner_b_id"])
    op.create_index("idx_innermosts_invite_email", "innermosts", ["invite_email"])

    # ==========================================================================
    # WILLING_BOXES TABLE
    # ==========================================================================
    op.create_table(
        "willing_boxes",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("innermost_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column(
            "phase",
            postgresql.ENUM(name="week_phase", create_type=False),
            server_default="planting_trees",
            nullable=False,
        ),
        *[
            sa.Column(column, postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False)
            for column in SLOT_COLUMNS
        ],
        sa.Column("locked_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["innermost_id"], ["innermosts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("innermost_id", "week_number", name="unique_innermost_week_box"),
        sa.CheckConstraint("week_number >= 1", name="valid_week_number"),
    )
    op.create_index("idx_willing_boxes_innermost_week", "willing_boxes", ["innermost_id", "week_number"])

    # ==========================================================================
    # WEEKLY_SCORES TABLE
    # ==========================================================================
    op.create_table(
        "weekly_scores",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("innermost_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("partner_a_score", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("partner_b_score", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_complete", sa.Boolean(), server_default=sa.text("FALSE"), nullable=False),
        sa.Column("completed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["innermost_id"], ["innermosts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("innermost_id", "week_number", name="unique_innermost_week_score"),
        sa.CheckConstraint("partner_a_score >= 0 AND partner_b_score >= 0", name="non_negative_scores"),
    )
    op.create_index("idx_weekly_scores_innermost_week", "weekly_scores", ["innermost_id", "week_number"])

    # ==========================================================================
    # UPDATED_AT TRIGGER FUNCTION
    # ==========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    for table in ["users", "innermosts", "willing_boxes"]:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    for table in ["users", "innermosts", "willing_boxes"]:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")

    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    # Drop tables in reverse dependency order
    op.drop_table("weekly_scores")
    op.drop_table("willing_boxes")
    op.drop_table("innermosts")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS week_phase")
    op.execute("DROP TYPE IF EXISTS innermost_status")
    op.execute("DROP TYPE IF EXISTS subscription_status")
