"""Pydantic schemas for API request/response validation."""

from willing_tree.schemas.user import UserRead
from willing_tree.schemas.innermosts import InnermostCreate, InnermostRead
from willing_tree.schemas.willing_boxes import (
    GuessItem,
    GuessSubmit,
    WillingBoxRead,
    WillingItem,
    WillingListSubmit,
    WishItem,
    WishListSubmit,
)
from willing_tree.schemas.scores import WeeklyScoreRead
from willing_tree.schemas.stats import StatsRead

__all__ = [
    # User
    "UserRead",
    # Innermosts
    "InnermostCreate",
    "InnermostRead",
    # Willing boxes
    "WishItem",
    "WillingItem",
    "GuessItem",
    "WishListSubmit",
    "WillingListSubmit",
    "GuessSubmit",
    "WillingBoxRead",
    # Scores
    "WeeklyScoreRead",
    # Stats
    "StatsRead",
]
