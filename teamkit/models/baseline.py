"""
Patient Baseline Model

A baseline is a dated set of clinical measurements for one patient.
Baselines are team-scoped in their own right: team_id is stored on the
row and every lookup filters on both team_id and patient_id.
"""
from sqlalchemy import Column, String, DateTime, Float, ForeignKey, Index, Integer, JSON, Text
from sqlalchemy.orm import relationship
from teamkit.database import Base, utcnow
from teamkit.models.mixins import SoftDeleteMixin, TeamScopedMixin
import uuid


class PatientBaseline(TeamScopedMixin, SoftDeleteMixin, Base):
    __tablename__ = "patient_baselines"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    patient_id = Column(
        String(36),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    date_recorded = Column(DateTime, nullable=False)

    # Vitals (metric units)
    height = Column(Float, nullable=True)          # cm
    weight = Column(Float, nullable=True)          # kg
    blood_pressure = Column(JSON, nullable=True)   # {"systolic": .., "diastolic": ..}
    heart_rate = Column(Integer, nullable=True)    # bpm
    temperature = Column(Float, nullable=True)     # °C
    oxygen_sat = Column(Integer, nullable=True)    # %
    blood_sugar = Column(Float, nullable=True)     # mg/dL
    notes = Column(Text, nullable=True)

    # Free-form clinical documents
    vital_signs = Column(JSON, nullable=True)
    lab_results = Column(JSON, nullable=True)
    medications = Column(JSON, nullable=True)
    allergies = Column(JSON, nullable=True)
    chronic_conditions = Column(JSON, nullable=True)

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    patient = relationship("Patient", back_populates="baselines")

    __table_args__ = (
        # History view: live baselines for one patient, latest first
        Index("idx_baseline_team_patient_recorded", "team_id", "patient_id", "deleted_at", "date_recorded"),
    )

    def __repr__(self):
        return f"<PatientBaseline {self.id} patient={self.patient_id} (team={self.team_id})>"
