"""User schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from willing_tree.schemas.base import BaseSchema


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: UUID
    email: str | None
    name: str
    subscription_status: Literal["free", "premium", "expired"]
    created_at: datetime
