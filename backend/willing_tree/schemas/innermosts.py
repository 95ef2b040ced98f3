"""Innermost (relationship-pair) schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from willing_tree.schemas.base import BaseSchema, InnermostStatusType


class InnermostCreate(BaseSchema):
    """Schema for inviting a partner into a new innermost."""

    partner_email: EmailStr
    invite_message: str | None = Field(None, max_length=500)


class InnermostRead(BaseSchema):
    """Schema for reading an innermost."""

    id: UUID
    partner_a_id: UUID
    partner_b_id: UUID | None
    invite_email: str
    invite_message: str | None = None
    status: InnermostStatusType
    current_week: int
    created_at: datetime
    updated_at: datetime
