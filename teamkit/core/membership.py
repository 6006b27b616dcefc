"""
Membership Resolver

Resolution is a pure read: (actor, team identifier) -> the team plus the
actor's membership in it, or no membership. "Not a member" is a normal
result, never an exception. Only an identifier that matches no team at
all raises TeamNotFoundError.

NO CACHING: every decision reads the current membership row, so a role
downgrade or removal takes effect on the very next request.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from teamkit.core.exceptions import TeamNotFoundError
from teamkit.core.roles import Role
from teamkit.models.membership import Membership
from teamkit.models.team import Team
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MembershipLookup:
    """Result of resolving an actor against a team."""
    team: Team
    membership: Optional[Membership]

    @property
    def is_member(self) -> bool:
        return self.membership is not None

    @property
    def role(self) -> Optional[Role]:
        return self.membership.role if self.membership is not None else None


class MembershipResolver:
    """
    Finds an actor's membership in a team.

    Takes the team either by stable id or by slug. Never creates
    memberships.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve_team(self, team_identifier: str) -> Team:
        """
        Load a team by stable id, falling back to slug.

        Ids win so a slug can never shadow another team's id.

        Raises TeamNotFoundError if neither matches.
        """
        if not team_identifier:
            raise TeamNotFoundError(team_identifier)

        team = self.db.query(Team).filter(Team.id == team_identifier).first()
        if team is None:
            team = self.db.query(Team).filter(Team.slug == team_identifier).first()

        if team is None:
            logger.debug(f"Team not found: {team_identifier}")
            raise TeamNotFoundError(team_identifier)
        return team

    def find_membership(self, actor_id: str, team_id: str) -> Optional[Membership]:
        """Single indexed point lookup on (team_id, user_id)."""
        return self.db.query(Membership).filter(
            Membership.team_id == team_id,
            Membership.user_id == actor_id
        ).first()

    def resolve(self, actor_id: str, team_identifier: str) -> MembershipLookup:
        if not actor_id:
            # The route layer must authenticate before asking
            raise ValueError("actor_id is required; authenticate before resolving membership")

        team = self.resolve_team(team_identifier)
        return MembershipLookup(team=team, membership=self.find_membership(actor_id, team.id))
