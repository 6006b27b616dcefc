"""
Team-Scoped Query Discipline

TeamScope is the shared helper every route uses to read or write
team-scoped rows. It is built from an *allowed* AccessDecision, so the
team id it filters on always comes from a verified membership.

Rules it enforces:
- Every query has an equality filter on team_id.
- New rows are stamped with the scope's team_id; any team_id in the
  client payload is dropped.
- Updates and deletes are filtered by team_id. A row from another team
  is "not found", never "forbidden", so existence doesn't leak.

The scope never commits. Handlers commit once the whole operation is
done, the same way they did before.
"""
from typing import Any, Dict, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from teamkit.core.access import AccessDecision
from teamkit.core.exceptions import RecordNotFoundError, TeamIsolationError
from teamkit.core.roles import Role
from teamkit.models.mixins import TeamScopedMixin
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=TeamScopedMixin)


class TeamScope:
    """
    Storage access pinned to one team.

    Example:
        scope = TeamScope(db, decision)
        patient = scope.get_or_404(Patient, patient_id)
    """

    def __init__(self, db: Session, decision: AccessDecision):
        if decision is None or not decision.allowed:
            # Programming error: handlers must halt on deny
            logger.error("Attempted to scope queries with a denied access decision")
            raise TeamIsolationError("Cannot scope queries without an allowed access decision")
        self.db = db
        self.decision = decision

    @property
    def team_id(self) -> str:
        return self.decision.team_id

    @property
    def actor_id(self) -> str:
        return self.decision.actor_id

    @property
    def role(self) -> Role:
        return self.decision.role

    @staticmethod
    def _check_model(model) -> None:
        if not (isinstance(model, type) and issubclass(model, TeamScopedMixin)):
            raise TypeError(f"{model!r} is not a team-scoped model")

    def query(self, model: Type[T]) -> Query:
        """Base query for a team-scoped model, filtered by team_id."""
        self._check_model(model)
        return self.db.query(model).filter(model.team_id == self.team_id)

    def get(self, model: Type[T], record_id: str, *criteria) -> Optional[T]:
        return self.query(model).filter(model.id == record_id, *criteria).first()

    def get_or_404(self, model: Type[T], record_id: str, *criteria, label: Optional[str] = None) -> T:
        record = self.get(model, record_id, *criteria)
        if record is None:
            raise RecordNotFoundError(label or model.__name__, record_id)
        return record

    def add(self, model: Type[T], **fields: Any) -> T:
        """Create a row stamped with this scope's team_id."""
        self._check_model(model)
        if "team_id" in fields and fields["team_id"] != self.team_id:
            logger.warning(
                "Dropping client-supplied team_id on create",
                extra={"team_id": self.team_id, "actor_id": self.actor_id}
            )
        fields.pop("team_id", None)
        record = model(team_id=self.team_id, **fields)
        self.db.add(record)
        return record

    def update(self, model: Type[T], record_id: str, values: Dict[str, Any], *criteria, label: Optional[str] = None) -> T:
        """
        Apply values with a single UPDATE filtered by team_id.

        Zero matched rows (missing, or owned by another team) raises
        RecordNotFoundError.
        """
        values = {key: value for key, value in values.items() if key != "team_id"}
        record = self.get_or_404(model, record_id, *criteria, label=label)
        if not values:
            return record

        updated = self.query(model).filter(model.id == record_id, *criteria).update(
            {getattr(model, key): value for key, value in values.items()},
            synchronize_session="fetch"
        )
        if not updated:
            raise RecordNotFoundError(label or model.__name__, record_id)

        self.db.refresh(record)
        return record

    def delete(self, model: Type[T], record_id: str, *criteria, label: Optional[str] = None) -> None:
        record = self.get_or_404(model, record_id, *criteria, label=label)
        self.db.delete(record)
