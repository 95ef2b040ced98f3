"""
SQLAlchemy 2.0 Models for Willing Tree.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and proper relationship definitions.

Per-partner submissions on a WillingBox live in separate JSONB columns
(one slot per partner per phase) so that two partners writing to the same
week never touch the same column.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import CITEXT, ENUM as PGENUM, JSONB, TIMESTAMP, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from willing_tree.db.base import Base


# =============================================================================
# ENUMS
# =============================================================================


class SubscriptionStatus(str, PyEnum):
    """Billing state of a user, maintained by the billing service."""

    FREE = "free"
    PREMIUM = "premium"
    EXPIRED = "expired"


class InnermostStatus(str, PyEnum):
    """Lifecycle of a relationship-pair."""

    PENDING = "pending"
    ACTIVE = "active"
    ARCHIVED = "archived"


class WeekPhase(str, PyEnum):
    """Phases of a weekly exercise, in their fixed order."""

    PLANTING_TREES = "planting_trees"
    SELECTING_WILLING = "selecting_willing"
    GUESSING = "guessing"
    COMPLETE = "complete"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    User account.

    Accounts are created and authenticated by the external account service;
    this service only reads them to resolve partners and subscription limits.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    email: Mapped[Optional[str]] = mapped_column(
        CITEXT(), unique=True, index=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subscription_status: Mapped[str] = mapped_column(
        PGENUM("free", "premium", "expired", name="subscription_status", create_type=False),
        nullable=False,
        default="free",
    )
    subscription_end_date: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )


class Innermost(Base):
    """
    Relationship-pair undergoing weekly exercises.

    Partner A is the inviter. partner_b_id stays NULL until the invitee
    accepts; invite_email identifies the invitee until then.
    """

    __tablename__ = "innermosts"
    __table_args__ = (
        Index("idx_innermosts_partner_a", "partner_a_id"),
        Index("idx_innermosts_partner_b", "partner_b_id"),
        Index("idx_innermosts_invite_email", "invite_email"),
        CheckConstraint(
            "partner_b_id IS NULL OR partner_b_id <> partner_a_id",
            name="distinct_partners",
        ),
        CheckConstraint("current_week >= 0", name="valid_current_week"),
    )

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    partner_a_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    partner_b_id: Mapped[Optional[UUID]] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    invite_email: Mapped[str] = mapped_column(CITEXT(), nullable=False)
    invite_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        PGENUM("pending", "active", "archived", name="innermost_status", create_type=False),
        nullable=False,
        default="pending",
    )
    current_week: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    willing_boxes: Mapped[list["WillingBox"]] = relationship(
        "WillingBox", back_populates="innermost", cascade="all, delete-orphan"
    )
    weekly_scores: Mapped[list["WeeklyScore"]] = relationship(
        "WeeklyScore", back_populates="innermost", cascade="all, delete-orphan"
    )


class WillingBox(Base):
    """
    Weekly exercise document (one per innermost per week).

    phase is a cache of what the partner slots imply; the workflow package
    re-derives and validates it.
    """

    __tablename__ = "willing_boxes"
    __table_args__ = (
        UniqueConstraint("innermost_id", "week_number", name="unique_innermost_week_box"),
        Index("idx_willing_boxes_innermost_week", "innermost_id", "week_number"),
        CheckConstraint("week_number >= 1", name="valid_week_number"),
    )

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    innermost_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("innermosts.id", ondelete="CASCADE"), nullable=False
    )
    week_number: Mapped[int] = mapped_column(nullable=False)
    phase: Mapped[str] = mapped_column(
        PGENUM(
            "planting_trees", "selecting_willing", "guessing", "complete",
            name="week_phase", create_type=False,
        ),
        nullable=False,
        default="planting_trees",
    )

    # Partner slots
    partner_a_wish_list: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    partner_b_wish_list: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    partner_a_willing_list: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    partner_b_willing_list: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    partner_a_guesses: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    partner_b_guesses: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)

    locked_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )  # Set when willingness is frozen for guessing
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    innermost: Mapped["Innermost"] = relationship("Innermost", back_populates="willing_boxes")


class WeeklyScore(Base):
    """
    Final score of a week (1:1 with a WillingBox).

    Written once, when both partners have guessed. Never updated afterwards.
    """

    __tablename__ = "weekly_scores"
    __table_args__ = (
        UniqueConstraint("innermost_id", "week_number", name="unique_innermost_week_score"),
        Index("idx_weekly_scores_innermost_week", "innermost_id", "week_number"),
        CheckConstraint(
            "partner_a_score >= 0 AND partner_b_score >= 0",
            name="non_negative_scores",
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    innermost_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("innermosts.id", ondelete="CASCADE"), nullable=False
    )
    week_number: Mapped[int] = mapped_column(nullable=False)
    partner_a_score: Mapped[int] = mapped_column(nullable=False, default=0)
    partner_b_score: Mapped[int] = mapped_column(nullable=False, default=0)
    is_complete: Mapped[bool] = mapped_column(nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    innermost: Mapped["Innermost"] = relationship("Innermost", back_populates="weekly_scores")
