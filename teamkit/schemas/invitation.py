"""
Invitation Schemas
"""
from pydantic import BaseModel, EmailStr
from datetime import datetime

from teamkit.core.roles import Role


class InvitationCreate(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER


class InvitationResponse(BaseModel):
    id: str
    team_id: str
    email: EmailStr
    role: Role
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class InvitationCreatedResponse(InvitationResponse):
    """Only returned once, to the inviter, so the link can be sent."""
    token: str
