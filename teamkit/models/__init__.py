"""
Database Models

Every team-scoped model carries team_id through TeamScopedMixin.
"""
from teamkit.models.team import Team
from teamkit.models.user import User
from teamkit.models.membership import Membership
from teamkit.models.invitation import Invitation
from teamkit.models.patient import Patient, Gender
from teamkit.models.baseline import PatientBaseline

__all__ = ["Team", "User", "Membership", "Invitation", "Patient", "Gender", "PatientBaseline"]
