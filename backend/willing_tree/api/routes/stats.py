"""Statistics route."""

from dataclasses import asdict

from fastapi import APIRouter

from willing_tree.api.deps import CurrentUser, WeeklyCycle, to_http_exception
from willing_tree.schemas.stats import StatsRead
from willing_tree.workflow.errors import WorkflowError

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsRead)
async def get_stats(
    current_user: CurrentUser,
    service: WeeklyCycle,
) -> StatsRead:
    """Relationship statistics, recomputed from current state on every call."""
    try:
        stats = await service.stats_for_user(current_user)
    except WorkflowError as e:
        raise to_http_exception(e) from e
    return StatsRead.model_validate(asdict(stats))
