"""
Team Member Endpoints

List members, change a member's role, remove a member.

RBAC:
- List members: members:read
- Change role: members:update (plus owner rules in teamkit.core.members)
- Remove member: members:delete (plus owner rules)

TENANT_ISOLATION: A membership id from another team is "not found".
"""
from fastapi import APIRouter, BackgroundTasks, Depends, status

from teamkit.models.membership import Membership
from teamkit.models.user import User
from teamkit.schemas.member import MemberListResponse, MemberResponse, RoleUpdate
from teamkit.api.deps import authorize, get_audit_trail
from teamkit.core.audit import AuditTrail
from teamkit.core.members import change_role, remove_membership
from teamkit.core.permissions import Action, Resource
from teamkit.core.scoping import TeamScope
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/teams/{slug}/members", tags=["members"])


def _to_response(membership: Membership, user: User) -> MemberResponse:
    return MemberResponse(
        id=membership.id,
        team_id=membership.team_id,
        user_id=membership.user_id,
        role=membership.role,
        email=user.email if user else None,
        full_name=user.full_name if user else None,
        created_at=membership.created_at,
    )


@router.get("", response_model=MemberListResponse)
async def list_members(
    scope: TeamScope = Depends(authorize(Resource.MEMBERS, Action.READ)),
):
    rows = scope.query(Membership).join(
        User, User.id == Membership.user_id
    ).add_entity(User).order_by(Membership.created_at).all()

    members = [_to_response(membership, user) for membership, user in rows]
    logger.debug(f"Listed {len(members)} members for team {scope.team_id}")

    return MemberListResponse(members=members, total=len(members))


@router.patch("/{membership_id}", response_model=MemberResponse)
async def update_member_role(
    membership_id: str,
    role_data: RoleUpdate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.MEMBERS, Action.UPDATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """
    Change a member's role.

    Takes effect on the member's next request; nothing is cached.
    """
    membership = change_role(scope, membership_id, role_data.role)
    scope.db.commit()

    user = scope.db.get(User, membership.user_id)
    background_tasks.add_task(audit.record, scope.decision, "member.update")

    return _to_response(membership, user)


@router.delete("/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    membership_id: str,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.MEMBERS, Action.DELETE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    remove_membership(scope, membership_id)
    scope.db.commit()

    background_tasks.add_task(audit.record, scope.decision, "member.remove")

    return None
