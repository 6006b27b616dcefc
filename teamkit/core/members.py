"""
Membership mutations.

Adding, re-roling and removing members. These are the only places a
Membership row changes. Role changes are a single UPDATE so no request
observes a half-applied role; two concurrent changes resolve
last-write-wins at the database.

Owner rules:
- Only an OWNER may change or remove an OWNER's membership
- Only an OWNER may grant OWNER
- A team always keeps at least one OWNER

None of these functions commit.
"""
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teamkit.core.exceptions import (
    AccessDeniedError,
    DuplicateMembershipError,
    InvalidInputError,
    RecordNotFoundError,
)
from teamkit.core.roles import Role
from teamkit.core.scoping import TeamScope
from teamkit.models.membership import Membership
from teamkit.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)


def count_owners(db: Session, team_id: str) -> int:
    return db.query(func.count(Membership.id)).filter(
        Membership.team_id == team_id,
        Membership.role == Role.OWNER
    ).scalar()


def add_membership(db: Session, team_id: str, user_id: str, role: Role = Role.MEMBER) -> Membership:
    """
    Create a membership.

    Raises DuplicateMembershipError if the (team, user) pair already has
    one. The unique constraint backs this up for concurrent inserts.

    Takes a raw team_id because it runs before the actor has any
    membership (team creation, invitation acceptance); callers pass an
    id they loaded themselves, never one from the request body.
    """
    existing = db.query(Membership).filter(
        Membership.team_id == team_id,
        Membership.user_id == user_id
    ).first()
    if existing is not None:
        raise DuplicateMembershipError()

    membership = Membership(team_id=team_id, user_id=user_id, role=Role(role))
    db.add(membership)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DuplicateMembershipError()

    logger.info(f"Membership created: user={user_id} team={team_id} role={membership.role.value}")
    return membership


def _guard_owner_target(scope: TeamScope, target: Membership) -> None:
    if target.role == Role.OWNER and scope.role != Role.OWNER:
        log_security_event(
            "membership_guard",
            {"reason": "non_owner_modifying_owner", "actor_id": scope.actor_id, "team_id": scope.team_id}
        )
        raise AccessDeniedError("You do not have permission to modify this member")


def _guard_last_owner(scope: TeamScope, target: Membership) -> None:
    if target.role == Role.OWNER and count_owners(scope.db, scope.team_id) <= 1:
        raise InvalidInputError("A team must have at least one owner")


def change_role(scope: TeamScope, membership_id: str, new_role: Role) -> Membership:
    """Change a member's role. Another team's membership is "not found"."""
    new_role = Role(new_role)
    target = scope.get_or_404(Membership, membership_id, label="Member")

    _guard_owner_target(scope, target)
    if new_role == Role.OWNER and scope.role != Role.OWNER:
        raise AccessDeniedError("Only owners can grant the owner role")
    if new_role != Role.OWNER:
        _guard_last_owner(scope, target)

    membership = scope.update(Membership, membership_id, {"role": new_role}, label="Member")
    logger.info(
        f"Role changed: membership={membership_id} team={scope.team_id} "
        f"role={new_role.value} by {scope.actor_id}"
    )
    return membership


def remove_membership(scope: TeamScope, membership_id: str) -> None:
    """Remove another member from the team."""
    target = scope.get_or_404(Membership, membership_id, label="Member")

    if target.user_id == scope.actor_id:
        raise InvalidInputError("Use leave to remove yourself from a team")

    _guard_owner_target(scope, target)
    _guard_last_owner(scope, target)

    scope.db.delete(target)
    logger.info(f"Member removed: membership={membership_id} team={scope.team_id} by {scope.actor_id}")


def leave_team(scope: TeamScope) -> None:
    """Remove the actor's own membership."""
    own = scope.query(Membership).filter(Membership.user_id == scope.actor_id).first()
    if own is None:
        raise RecordNotFoundError("Member")

    _guard_last_owner(scope, own)

    scope.db.delete(own)
    logger.info(f"Member left: user={scope.actor_id} team={scope.team_id}")
