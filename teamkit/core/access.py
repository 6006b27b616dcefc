"""
Access Decision Function

The one call every protected operation makes before touching team data:

    decision = decider.decide(db, actor_id, "acme", Resource.PATIENTS, Action.READ)

Steps:
1. Resolve the team identifier (slug or id). Unknown -> TeamNotFoundError.
2. Resolve the actor's membership. None -> deny(NOT_A_MEMBER); the
   matrix is not consulted.
3. Look up (role, resource, action) in the PermissionMatrix.
4. allow (with team id and role) or deny(INSUFFICIENT_ROLE).

An allowed decision is the only thing TeamScope accepts, so the team id
used for queries always comes from a verified membership, never from
the URL alone.

Decisions are computed fresh on every call and the function has no side
effects, so calling it twice with unchanged state gives the same answer.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from teamkit.core.membership import MembershipResolver
from teamkit.core.permissions import Action, PermissionMatrix, Resource
from teamkit.core.roles import Role
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)


class DenyReason(str, enum.Enum):
    NOT_A_MEMBER = "NotAMember"
    INSUFFICIENT_ROLE = "InsufficientRole"


@dataclass(frozen=True)
class AccessDecision:
    """
    Outcome of an access check.

    team_id is always the canonical id of the resolved team. On deny it
    is there for logging only; TeamScope refuses denied decisions.
    """
    allowed: bool
    actor_id: str
    team_id: str
    resource: Resource
    action: Action
    role: Optional[Role] = None
    reason: Optional[DenyReason] = None

    @property
    def denied(self) -> bool:
        return not self.allowed


class AccessDecider:
    """
    Composes the membership resolver and the permission matrix.

    The matrix is injected so tests can build isolated ones.
    """

    def __init__(self, matrix: PermissionMatrix):
        self.matrix = matrix

    def decide(
        self,
        db: Session,
        actor_id: str,
        team_identifier: str,
        resource: Resource,
        action: Action,
    ) -> AccessDecision:
        # Invalid values fail here, before any lookup
        resource = Resource(resource)
        action = Action(action)

        lookup = MembershipResolver(db).resolve(actor_id, team_identifier)

        if not lookup.is_member:
            logger.debug(f"Access denied (not a member): actor={actor_id} team={lookup.team.id}")
            return AccessDecision(
                allowed=False,
                actor_id=actor_id,
                team_id=lookup.team.id,
                resource=resource,
                action=action,
                reason=DenyReason.NOT_A_MEMBER,
            )

        role = Role(lookup.role)
        if not self.matrix.is_allowed(role, resource, action):
            logger.debug(
                f"Access denied (insufficient role): actor={actor_id} team={lookup.team.id} "
                f"role={role.value} {resource.value}:{action.value}"
            )
            return AccessDecision(
                allowed=False,
                actor_id=actor_id,
                team_id=lookup.team.id,
                resource=resource,
                action=action,
                role=role,
                reason=DenyReason.INSUFFICIENT_ROLE,
            )

        return AccessDecision(
            allowed=True,
            actor_id=actor_id,
            team_id=lookup.team.id,
            resource=resource,
            action=action,
            role=role,
        )
