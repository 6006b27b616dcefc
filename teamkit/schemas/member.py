"""
Member Schemas

Request/response models for team memberships.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from teamkit.core.roles import Role


class MemberResponse(BaseModel):
    id: str
    team_id: str
    user_id: str
    role: Role
    email: Optional[str] = None
    full_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MemberListResponse(BaseModel):
    members: list[MemberResponse]
    total: int


class RoleUpdate(BaseModel):
    """Body for changing a member's role."""
    role: Role
