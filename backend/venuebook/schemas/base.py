"""
Base schemas shared by request payloads and read models.
"""

from pydantic import BaseModel, ConfigDict


class StandardizedModel(BaseModel):
    """Read models built from ORM rows."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictModel(BaseModel):
    """Request payloads: forbid extras, validate defaults and assignments."""

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        validate_assignment=True,
    )
