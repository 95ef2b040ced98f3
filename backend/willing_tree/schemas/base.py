"""Base schema configuration and shared literal types."""

from typing import Literal

from pydantic import BaseModel, ConfigDict

# Mirrors of the database enums, used as literals for API validation
WeekPhaseType = Literal["planting_trees", "selecting_willing", "guessing", "complete"]
InnermostStatusType = Literal["pending", "active", "archived"]
PartnerRoleType = Literal["A", "B"]


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )
