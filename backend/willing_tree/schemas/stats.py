"""Statistics schemas."""

from uuid import UUID

from willing_tree.schemas.base import BaseSchema


class StatsRead(BaseSchema):
    """Relationship statistics for the current user, recomputed per request."""

    total_trees: int
    active_trees: int
    pending_trees: int
    archived_trees: int
    total_leaves_grown: int
    total_score: int
    average_tree_growth: int
    current_week_activities: int
    needs_action: bool
    needs_action_by_innermost: dict[UUID, bool]
