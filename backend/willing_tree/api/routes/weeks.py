"""
Weekly exercise routes.

Endpoints:
- POST /innermosts/{id}/weeks - Start (or resume) the current week
- GET /innermosts/{id}/weeks/{n} - Get a week, reconciled first
- PUT /innermosts/{id}/weeks/{n}/wishes|willing|guesses - Submit for the current phase
- PATCH same paths - Revise before the partner submits
- GET /innermosts/{id}/scores - Score history
- GET /innermosts/{id}/weeks/{n}/score - One week's score

Each submit is a single partner action: the service applies it, advances
the phase when both partners are done, and scores the week when guessing
closes.
"""

from collections.abc import Sequence
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status
from pydantic import BaseModel

from willing_tree.api.deps import CurrentUser, WeeklyCycle, to_http_exception
from willing_tree.db.models import User, WeekPhase
from willing_tree.schemas.scores import WeeklyScoreRead
from willing_tree.schemas.willing_boxes import (
    GuessSubmit,
    WillingBoxRead,
    WillingListSubmit,
    WishListSubmit,
)
from willing_tree.services.weekly_cycle import WeeklyCycleService
from willing_tree.workflow.errors import WorkflowError

router = APIRouter(prefix="/innermosts", tags=["weeks"])

WeekNumber = Annotated[int, Path(ge=1)]


async def _apply(
    service: WeeklyCycleService,
    innermost_id: UUID,
    week_number: int,
    user: User,
    phase: WeekPhase,
    items: Sequence[BaseModel],
    *,
    revise: bool = False,
) -> WillingBoxRead:
    payload = [item.model_dump() for item in items]
    action = service.revise if revise else service.submit
    try:
        document = await action(innermost_id, week_number, user, phase, payload)
        role = await service.role_for(innermost_id, user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return WillingBoxRead.from_document(document, role)


# =============================================================================
# WEEKS
# =============================================================================


@router.post("/{innermost_id}/weeks", response_model=WillingBoxRead, status_code=status.HTTP_201_CREATED)
async def start_week(
    innermost_id: UUID,
    current_user: CurrentUser,
    service: WeeklyCycle,
) -> WillingBoxRead:
    """Open the next week, or return the one still in progress."""
    try:
        document = await service.start_week(innermost_id, current_user)
        role = await service.role_for(innermost_id, current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return WillingBoxRead.from_document(document, role)


@router.get("/{innermost_id}/weeks/{week_number}", response_model=WillingBoxRead)
async def get_week(
    innermost_id: UUID,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    try:
        document, role = await service.get_week(innermost_id, week_number, current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return WillingBoxRead.from_document(document, role)


# =============================================================================
# SUBMISSIONS
# =============================================================================


@router.put("/{innermost_id}/weeks/{week_number}/wishes", response_model=WillingBoxRead)
async def submit_wishes(
    innermost_id: UUID,
    data: WishListSubmit,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    """Plant this week's wishes."""
    return await _apply(service, innermost_id, week_number, current_user, WeekPhase.PLANTING_TREES, data.items)


@router.patch("/{innermost_id}/weeks/{week_number}/wishes", response_model=WillingBoxRead)
async def revise_wishes(
    innermost_id: UUID,
    data: WishListSubmit,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    return await _apply(
        service, innermost_id, week_number, current_user, WeekPhase.PLANTING_TREES, data.items, revise=True
    )


@router.put("/{innermost_id}/weeks/{week_number}/willing", response_model=WillingBoxRead)
async def submit_willing(
    innermost_id: UUID,
    data: WillingListSubmit,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    """Pick which of the partner's wishes you are willing to do."""
    return await _apply(service, innermost_id, week_number, current_user, WeekPhase.SELECTING_WILLING, data.items)


@router.patch("/{innermost_id}/weeks/{week_number}/willing", response_model=WillingBoxRead)
async def revise_willing(
    innermost_id: UUID,
    data: WillingListSubmit,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    return await _apply(
        service, innermost_id, week_number, current_user, WeekPhase.SELECTING_WILLING, data.items, revise=True
    )


@router.put("/{innermost_id}/weeks/{week_number}/guesses", response_model=WillingBoxRead)
async def submit_guesses(
    innermost_id: UUID,
    data: GuessSubmit,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    """Guess which of your wishes your partner picked."""
    return await _apply(service, innermost_id, week_number, current_user, WeekPhase.GUESSING, data.items)


@router.patch("/{innermost_id}/weeks/{week_number}/guesses", response_model=WillingBoxRead)
async def revise_guesses(
    innermost_id: UUID,
    data: GuessSubmit,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WillingBoxRead:
    return await _apply(
        service, innermost_id, week_number, current_user, WeekPhase.GUESSING, data.items, revise=True
    )


# =============================================================================
# SCORES
# =============================================================================


@router.get("/{innermost_id}/scores", response_model=list[WeeklyScoreRead])
async def list_scores(
    innermost_id: UUID,
    current_user: CurrentUser,
    service: WeeklyCycle,
) -> list[WeeklyScoreRead]:
    """Score history. Plans without extended history only see the current week."""
    try:
        scores = await service.list_scores(innermost_id, current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return [WeeklyScoreRead.model_validate(s) for s in scores]


@router.get("/{innermost_id}/weeks/{week_number}/score", response_model=WeeklyScoreRead)
async def get_score(
    innermost_id: UUID,
    current_user: CurrentUser,
    service: WeeklyCycle,
    week_number: WeekNumber,
) -> WeeklyScoreRead:
    try:
        record = await service.get_score(innermost_id, week_number, current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return WeeklyScoreRead.model_validate(record)
