"""
Team Schemas

Request/response models for team operations.
"""
import re
from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional
from datetime import datetime

from teamkit.core.roles import Role

# Team ids are UUID4 strings; slugs may not take that shape
ID_SHAPE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated, alphanumerics only."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.strip().lower())
    return slug.strip("-")


def looks_like_team_id(slug: str) -> bool:
    return bool(ID_SHAPE.match(slug))


def normalize_slug(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    slug = slugify(value)
    if looks_like_team_id(slug):
        raise ValueError("Slug cannot have the form of a team id")
    return slug


class TeamCreate(BaseModel):
    """Schema for creating a team. Slug defaults to the slugified name."""
    name: str = Field(..., min_length=1, max_length=50)
    slug: Optional[str] = Field(None, min_length=3, max_length=50)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return normalize_slug(value)


class TeamUpdate(BaseModel):
    """
    Schema for updating a team. All fields optional.

    Leaving a field out keeps it; only domain may be cleared with null.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    slug: Optional[str] = Field(None, min_length=3, max_length=50)
    domain: Optional[str] = Field(None, max_length=255)
    features: Optional[Dict[str, bool]] = None

    @field_validator("name", "slug", "features")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return normalize_slug(value)


class TeamResponse(BaseModel):
    """Team response schema."""
    id: str
    name: str
    slug: str
    domain: Optional[str] = None
    features: Dict[str, bool] = {}
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TeamWithRoleResponse(TeamResponse):
    """A team as seen by one of its members."""
    role: Role
