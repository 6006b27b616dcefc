"""
Model mixins.

TeamScopedMixin: every business table mixes this in. It provides the
team_id column and pins it: the value must be set at creation and can
never change.

SoftDeleteMixin: clinical records are marked deleted and kept until
retention_until instead of being removed.
"""
from datetime import timedelta

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import declared_attr, validates

from teamkit.core.exceptions import TeamIsolationError
from teamkit.database import utcnow


class TeamScopedMixin:
    """
    Adds a non-null, indexed team_id foreign key with cascade delete.

    CRITICAL: Deleting a team removes every row carrying its id.
    """

    @declared_attr
    def team_id(cls):
        return Column(
            String(36),
            ForeignKey("teams.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )

    @validates("team_id")
    def _validate_team_id(self, key, value):
        if value is None:
            raise TeamIsolationError("team_id is required on team-scoped records")
        current = self.__dict__.get("team_id")
        if current is not None and current != value:
            raise TeamIsolationError("team_id cannot be changed once set")
        return value


class SoftDeleteMixin:

    deleted_at = Column(DateTime, nullable=True, index=True)
    deletion_reason = Column(Text, nullable=True)
    retention_until = Column(DateTime, nullable=True)

    @declared_attr
    def deleted_by(cls):
        return Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    @classmethod
    def live(cls):
        """Filter criterion for rows that are not soft deleted."""
        return cls.deleted_at.is_(None)

    def soft_delete(self, deleted_by: str, reason: str, retention_years: int) -> None:
        now = utcnow()
        self.deleted_at = now
        self.deleted_by = deleted_by
        self.updated_by = deleted_by
        self.deletion_reason = reason
        self.retention_until = now + timedelta(days=365 * retention_years)
