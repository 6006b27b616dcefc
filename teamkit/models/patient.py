"""
Patient Model

Patients are the team-scoped business entity: every record belongs to a
single team (clinic) and is only ever reached through a TeamScope.

Deletion is soft by default. Clinical records are kept until
retention_until before they may be purged.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from teamkit.database import Base, utcnow
from teamkit.models.mixins import SoftDeleteMixin, TeamScopedMixin
import enum
import uuid


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class Patient(TeamScopedMixin, SoftDeleteMixin, Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    mobile = Column(String(20), nullable=True)
    gender = Column(SQLEnum(Gender), nullable=True)

    # Audit columns
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    team = relationship("Team", back_populates="patients")
    baselines = relationship(
        "PatientBaseline", back_populates="patient", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        # Most common query: live patients for a team, newest first
        Index("idx_patient_team_deleted_created", "team_id", "deleted_at", "created_at"),
        Index("idx_patient_team_name", "team_id", "last_name", "first_name"),
    )

    def __repr__(self):
        return f"<Patient {self.first_name} {self.last_name} (team={self.team_id})>"

