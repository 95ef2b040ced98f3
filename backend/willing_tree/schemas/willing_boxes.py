"""WillingBox (weekly document) schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from willing_tree.db.models import WeekPhase, WillingBox
from willing_tree.schemas.base import BaseSchema, PartnerRoleType, WeekPhaseType
from willing_tree.workflow.phases import PartnerRole, get_slot, has_submitted
from willing_tree.workflow.stats import pending_roles

EffortLevelType = Literal["easy", "moderate", "challenging"]


# =============================================================================
# ITEMS
# =============================================================================


class WishItem(BaseSchema):
    """One wish on a partner's wish list."""

    id: str = Field(..., min_length=1, max_length=64)
    text: str = Field(..., min_length=1, max_length=500)
    category: str | None = Field(None, max_length=50)
    is_most_wanted: bool = False
    order: int | None = Field(None, ge=1)


class WillingItem(BaseSchema):
    """A wish from the partner's list that this partner is willing to do."""

    wish_id: str = Field(..., min_length=1, max_length=64)
    priority: int = Field(..., ge=1)
    effort_level: EffortLevelType | None = None


class GuessItem(BaseSchema):
    """A guess that the partner picked this wish (and with what effort)."""

    wish_id: str = Field(..., min_length=1, max_length=64)
    effort: str | None = Field(None, max_length=500)


# =============================================================================
# REQUESTS
# =============================================================================


class WishListSubmit(BaseSchema):
    items: list[WishItem] = Field(..., min_length=1)


class WillingListSubmit(BaseSchema):
    items: list[WillingItem] = Field(..., min_length=1)


class GuessSubmit(BaseSchema):
    items: list[GuessItem] = Field(..., min_length=1)


# =============================================================================
# RESPONSES
# =============================================================================


class WillingBoxRead(BaseSchema):
    """
    A weekly document as seen by one partner.

    The partner's willingness list and guesses stay hidden until the week is
    complete, otherwise guessing would be trivial.
    """

    id: UUID
    innermost_id: UUID
    week_number: int
    phase: WeekPhaseType
    my_role: PartnerRoleType
    my_wish_list: list[WishItem]
    partner_wish_list: list[WishItem]
    my_willing_list: list[WillingItem]
    partner_willing_list: list[WillingItem] | None = None
    my_guesses: list[GuessItem]
    partner_guesses: list[GuessItem] | None = None
    partner_has_submitted: bool
    waiting_on: list[PartnerRoleType]
    locked_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_document(cls, document: WillingBox, role: PartnerRole) -> "WillingBoxRead":
        phase = WeekPhase(document.phase)
        revealed = phase is WeekPhase.COMPLETE
        other = role.other
        return cls(
            id=document.id,
            innermost_id=document.innermost_id,
            week_number=document.week_number,
            phase=phase.value,
            my_role=role.value,
            my_wish_list=get_slot(document, role, WeekPhase.PLANTING_TREES),
            partner_wish_list=get_slot(document, other, WeekPhase.PLANTING_TREES),
            my_willing_list=get_slot(document, role, WeekPhase.SELECTING_WILLING),
            partner_willing_list=get_slot(document, other, WeekPhase.SELECTING_WILLING) if revealed else None,
            my_guesses=get_slot(document, role, WeekPhase.GUESSING),
            partner_guesses=get_slot(document, other, WeekPhase.GUESSING) if revealed else None,
            partner_has_submitted=revealed or has_submitted(document, other, phase),
            waiting_on=[r.value for r in pending_roles(document)],
            locked_at=document.locked_at,
            created_at=document.created_at,
        )
