"""
Patient Baseline Schemas

Request/response models for baseline measurements. Ranges are the
plausibility bounds used at intake; anything outside them is a 422.

Datetimes with an offset are converted to naive UTC before storage.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from teamkit.schemas.patient import Pagination


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class BloodPressure(BaseModel):
    systolic: int = Field(..., ge=50, le=300)
    diastolic: int = Field(..., ge=30, le=200)


class BaselineMeasurements(BaseModel):
    height: Optional[float] = Field(None, gt=0, le=300)
    weight: Optional[float] = Field(None, gt=0, le=1000)
    blood_pressure: Optional[BloodPressure] = None
    heart_rate: Optional[int] = Field(None, ge=20, le=300)
    temperature: Optional[float] = Field(None, ge=30, le=45)
    oxygen_sat: Optional[int] = Field(None, ge=0, le=100)
    blood_sugar: Optional[float] = Field(None, gt=0, le=1000)
    notes: Optional[str] = Field(None, max_length=2000)

    vital_signs: Optional[Any] = None
    lab_results: Optional[Any] = None
    medications: Optional[Any] = None
    allergies: Optional[Any] = None
    chronic_conditions: Optional[Any] = None


class BaselineCreate(BaselineMeasurements):
    """Schema for recording a baseline. Only date_recorded is required."""
    date_recorded: datetime

    @field_validator("date_recorded")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return as_naive_utc(value)


class BaselineUpdate(BaselineMeasurements):
    """
    Schema for updating a baseline.

    Omitted fields are kept; null clears a measurement. The recording date
    is fixed once the baseline exists.
    """


class BaselineDelete(BaseModel):
    deletion_reason: Optional[str] = Field(None, max_length=500)


class BaselineResponse(BaseModel):
    id: str
    team_id: str
    patient_id: str
    date_recorded: datetime
    height: Optional[float] = None
    weight: Optional[float] = None
    blood_pressure: Optional[Dict[str, int]] = None
    heart_rate: Optional[int] = None
    temperature: Optional[float] = None
    oxygen_sat: Optional[int] = None
    blood_sugar: Optional[float] = None
    notes: Optional[str] = None
    vital_signs: Optional[Any] = None
    lab_results: Optional[Any] = None
    medications: Optional[Any] = None
    allergies: Optional[Any] = None
    chronic_conditions: Optional[Any] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BaselineListResponse(BaseModel):
    """Paginated baselines, latest recording first."""
    data: list[BaselineResponse]
    pagination: Pagination
