"""Weekly score schemas."""

from datetime import datetime
from uuid import UUID

from willing_tree.schemas.base import BaseSchema


class WeeklyScoreRead(BaseSchema):
    """Schema for reading a week's score record."""

    id: UUID
    innermost_id: UUID
    week_number: int
    partner_a_score: int
    partner_b_score: int
    is_complete: bool
    completed_at: datetime | None = None
