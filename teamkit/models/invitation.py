"""
Invitation Model

Pending invitations to join a team. Accepting one creates a Membership
with the invited role and consumes the invitation.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from teamkit.database import Base, utcnow
from teamkit.models.mixins import TeamScopedMixin
from teamkit.core.roles import Role
import secrets
import uuid


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(32)


class Invitation(TeamScopedMixin, Base):
    __tablename__ = "invitations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    email = Column(String(255), nullable=False)
    role = Column(SQLEnum(Role), default=Role.MEMBER, nullable=False)

    token = Column(String(64), unique=True, nullable=False, index=True, default=generate_invitation_token)
    expires_at = Column(DateTime, nullable=False)

    invited_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)

    team = relationship("Team", back_populates="invitations")

    __table_args__ = (
        Index("idx_invitation_team_email", "team_id", "email"),
    )

    def __repr__(self):
        return f"<Invitation {self.email} team={self.team_id} role={self.role}>"

    @property
    def is_expired(self) -> bool:
        return utcnow() >= self.expires_at
