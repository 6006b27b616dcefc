"""
Membership Model

Binds a user to a team with exactly one role.

CRITICAL: (team_id, user_id) is unique. A second membership for the same
pair is rejected at the database level; role changes update the row in
place.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from teamkit.database import Base, utcnow
from teamkit.models.mixins import TeamScopedMixin
from teamkit.core.roles import Role
import uuid


class Membership(TeamScopedMixin, Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role = Column(
        SQLEnum(Role),
        default=Role.MEMBER,
        nullable=False
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    team = relationship("Team", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_membership_team_user"),
        # Common query: members of a team by role (owner counting)
        Index("idx_membership_team_role", "team_id", "role"),
    )

    def __repr__(self):
        return f"<Membership user={self.user_id} team={self.team_id} role={self.role}>"
