"""
Team Model

The team is the isolation boundary. Each team represents a separate
customer/organization; every team-scoped table carries its id.

Shared database, shared schema, team_id filter on every query.
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship
from teamkit.database import Base, utcnow
import uuid


class Team(Base):
    __tablename__ = "teams"

    # UUIDs avoid enumeration attacks
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)

    # Used for domain-based SSO/invitation matching
    domain = Column(String(255), nullable=True)

    # Open-ended boolean flags, e.g. {"patients": true}
    features = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    # passive_deletes lets the database cascade do the work
    memberships = relationship(
        "Membership", back_populates="team", cascade="all, delete-orphan", passive_deletes=True
    )
    invitations = relationship(
        "Invitation", back_populates="team", cascade="all, delete-orphan", passive_deletes=True
    )
    patients = relationship(
        "Patient", back_populates="team", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<Team {self.slug}>"
