"""
Invitation Endpoints

Team-side: create, list and revoke invitations.
Invitee-side: accept an invitation by token.

RBAC:
- Create: invitations:create; only an OWNER can invite as OWNER
- List: invitations:read
- Revoke: invitations:delete
- Accept: any authenticated user holding the token, whose email matches
"""
from datetime import timedelta
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from teamkit.config import get_settings
from teamkit.database import get_db, utcnow
from teamkit.models.invitation import Invitation
from teamkit.models.membership import Membership
from teamkit.models.team import Team
from teamkit.models.user import User
from teamkit.schemas.invitation import (
    InvitationCreate,
    InvitationCreatedResponse,
    InvitationResponse,
)
from teamkit.schemas.team import TeamWithRoleResponse, TeamResponse
from teamkit.api.deps import authorize, get_access_decider, get_audit_trail, get_current_actor
from teamkit.core.access import AccessDecider
from teamkit.core.audit import AuditTrail
from teamkit.core.exceptions import (
    AccessDeniedError,
    DuplicateMembershipError,
    InvalidInputError,
    RecordNotFoundError,
)
from teamkit.core.members import add_membership
from teamkit.core.permissions import Action, Resource
from teamkit.core.roles import Role
from teamkit.core.scoping import TeamScope
from teamkit.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

router = APIRouter(prefix="/teams/{slug}/invitations", tags=["invitations"])
accept_router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post("", response_model=InvitationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    invitation_data: InvitationCreate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.INVITATIONS, Action.CREATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    if invitation_data.role == Role.OWNER and scope.role != Role.OWNER:
        raise AccessDeniedError("Only owners can invite owners")

    email = invitation_data.email.lower()

    already_member = scope.query(Membership).join(
        User, User.id == Membership.user_id
    ).filter(User.email == email).first()
    if already_member:
        raise DuplicateMembershipError()

    invitation = scope.add(
        Invitation,
        email=email,
        role=invitation_data.role,
        expires_at=utcnow() + timedelta(days=get_settings().INVITATION_EXPIRE_DAYS),
        invited_by=scope.actor_id,
    )
    scope.db.commit()
    scope.db.refresh(invitation)

    logger.info(f"Invitation created: {invitation.id} team={scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "invitation.create")

    return invitation


@router.get("", response_model=list[InvitationResponse])
async def list_invitations(
    scope: TeamScope = Depends(authorize(Resource.INVITATIONS, Action.READ)),
):
    return scope.query(Invitation).order_by(Invitation.created_at.desc()).all()


@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invitation(
    invitation_id: str,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.INVITATIONS, Action.DELETE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    scope.delete(Invitation, invitation_id, label="Invitation")
    scope.db.commit()

    background_tasks.add_task(audit.record, scope.decision, "invitation.delete")

    return None


@accept_router.post("/{token}/accept", response_model=TeamWithRoleResponse)
async def accept_invitation(
    token: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
    decider: AccessDecider = Depends(get_access_decider),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """
    Accept an invitation and join the team.

    The token is the credential here: it is looked up globally, and the
    team id comes from the stored invitation, never from the request.
    """
    invitation = db.query(Invitation).filter(Invitation.token == token).first()
    if invitation is None:
        raise RecordNotFoundError("Invitation")

    if invitation.is_expired:
        raise InvalidInputError("Invitation has expired")

    if invitation.email.lower() != current_user.email.lower():
        log_security_event(
            "invitation_email_mismatch",
            {"actor_id": current_user.id, "team_id": invitation.team_id}
        )
        raise AccessDeniedError("This invitation was sent to a different email address")

    membership = add_membership(db, invitation.team_id, current_user.id, invitation.role)
    team_id, role = membership.team_id, membership.role
    db.delete(invitation)
    db.commit()

    logger.info(f"Invitation accepted: user={current_user.id} team={team_id} role={role.value}")

    decision = decider.decide(db, current_user.id, team_id, Resource.MEMBERS, Action.READ)
    background_tasks.add_task(audit.record, decision, "member.join", "c")

    team = db.get(Team, team_id)
    return TeamWithRoleResponse(**TeamResponse.model_validate(team).model_dump(), role=role)
