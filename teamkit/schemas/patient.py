"""
Patient Schemas

Request/response models for patient operations.

Mobile numbers are normalized to "(123) 456-7890" and must have exactly
10 digits. Team id is not accepted from the client: it always comes from
the access decision.
"""
import re
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from teamkit.models.patient import Gender


def normalize_mobile(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    if len(digits) != 10:
        raise ValueError("Mobile number must be 10 digits")
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


class PatientCreate(BaseModel):
    """Schema for creating a patient."""
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    mobile: str = Field(..., min_length=1)
    gender: Gender

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, value: str) -> str:
        return normalize_mobile(value)


class PatientUpdate(BaseModel):
    """
    Schema for updating a patient. All fields optional.

    Omit a field to keep it. Explicit nulls are rejected.
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    mobile: Optional[str] = Field(None, min_length=1)
    gender: Optional[Gender] = None

    @field_validator("first_name", "last_name", "mobile", "gender")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, value: str) -> str:
        return normalize_mobile(value)


class PatientDelete(BaseModel):
    deletion_reason: Optional[str] = Field(None, max_length=500)


class PatientResponse(BaseModel):
    """Patient response schema."""
    id: str
    team_id: str
    first_name: str
    last_name: str
    mobile: Optional[str]
    gender: Optional[Gender]
    created_by: Optional[str]
    updated_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    has_more: bool
    limit: int
    offset: int


class PatientListResponse(BaseModel):
    """Paginated list of patients."""
    data: list[PatientResponse]
    pagination: Pagination
