"""
Team Endpoints

Create teams, list the caller's teams, read/update/delete a team and
leave it.

RBAC (see teamkit.core.permissions):
- Create team: any authenticated user, who becomes OWNER
- Read team: team_settings:read
- Update team: team_settings:update
- Delete team: team_settings:delete (OWNER), only if FEATURE_TEAM_DELETION
- Leave team: team_settings:leave; the last OWNER cannot leave
"""
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from teamkit.database import get_db
from teamkit.models.membership import Membership
from teamkit.models.team import Team
from teamkit.models.user import User
from teamkit.schemas.team import (
    TeamCreate,
    TeamResponse,
    TeamUpdate,
    TeamWithRoleResponse,
    looks_like_team_id,
    slugify,
)
from teamkit.api.deps import (
    authorize,
    get_access_decider,
    get_audit_trail,
    get_current_actor,
    require_feature,
)
from teamkit.core.access import AccessDecider
from teamkit.core.audit import AuditTrail
from teamkit.core.exceptions import ConflictError, InvalidInputError
from teamkit.core.members import add_membership, leave_team
from teamkit.core.permissions import Action, Resource
from teamkit.core.roles import Role
from teamkit.core.scoping import TeamScope
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/teams", tags=["teams"])


def _with_role(team: Team, role: Role) -> TeamWithRoleResponse:
    return TeamWithRoleResponse(
        **TeamResponse.model_validate(team).model_dump(),
        role=role
    )


def _slug_taken(db: Session, slug: str, exclude_team_id: str = None) -> bool:
    query = db.query(Team).filter(Team.slug == slug)
    if exclude_team_id:
        query = query.filter(Team.id != exclude_team_id)
    return query.first() is not None


@router.post("", response_model=TeamWithRoleResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_data: TeamCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
    decider: AccessDecider = Depends(get_access_decider),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """
    Create a team. The creator becomes its OWNER in the same transaction.
    """
    slug = team_data.slug or slugify(team_data.name)
    if len(slug) < 3:
        raise InvalidInputError("Slug must be at least 3 characters")
    if looks_like_team_id(slug):
        raise InvalidInputError("Slug cannot have the form of a team id")

    if _slug_taken(db, slug):
        raise ConflictError("A team with this slug already exists")

    team = Team(name=team_data.name, slug=slug, features={})
    db.add(team)
    db.flush()

    add_membership(db, team.id, current_user.id, Role.OWNER)
    db.commit()
    db.refresh(team)

    logger.info(f"Team created: {team.id} ({team.slug}) by {current_user.id}")

    decision = decider.decide(db, current_user.id, team.id, Resource.TEAM_SETTINGS, Action.CREATE)
    background_tasks.add_task(audit.record, decision, "team.create")

    return _with_role(team, Role.OWNER)


@router.get("", response_model=list[TeamWithRoleResponse])
async def list_my_teams(
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    List the teams the caller belongs to, with their role in each.

    Filtered by the caller's own memberships; no team id comes from the
    request.
    """
    rows = db.query(Team, Membership.role).join(
        Membership, Membership.team_id == Team.id
    ).filter(
        Membership.user_id == current_user.id
    ).order_by(Team.name).all()

    return [_with_role(team, role) for team, role in rows]


@router.get("/{slug}", response_model=TeamWithRoleResponse)
async def get_team(
    scope: TeamScope = Depends(authorize(Resource.TEAM_SETTINGS, Action.READ)),
):
    team = scope.db.get(Team, scope.team_id)
    return _with_role(team, scope.role)


@router.patch("/{slug}", response_model=TeamWithRoleResponse)
async def update_team(
    team_data: TeamUpdate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.TEAM_SETTINGS, Action.UPDATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """
    Update team name, slug, domain or feature flags.

    Slugs stay unique across teams.
    """
    team = scope.db.get(Team, scope.team_id)
    update_data = team_data.model_dump(exclude_unset=True)

    if "slug" in update_data:
        if not update_data["slug"] or len(update_data["slug"]) < 3:
            raise InvalidInputError("Slug must be at least 3 characters")
        if _slug_taken(scope.db, update_data["slug"], exclude_team_id=team.id):
            raise ConflictError("A team with this slug already exists")

    if "features" in update_data:
        # Merge so unrelated flags survive a partial update
        update_data["features"] = {**(team.features or {}), **update_data["features"]}

    for field, value in update_data.items():
        setattr(team, field, value)

    scope.db.commit()
    scope.db.refresh(team)

    logger.info(f"Team updated: {team.id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "team.update")

    return _with_role(team, scope.role)


@router.delete(
    "/{slug}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_feature("FEATURE_TEAM_DELETION"))],
)
async def delete_team(
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.TEAM_SETTINGS, Action.DELETE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """
    Delete the team.

    CAUTION: Hard delete. Memberships, invitations and patients go with it
    through ON DELETE CASCADE.
    """
    team = scope.db.get(Team, scope.team_id)
    scope.db.delete(team)
    scope.db.commit()

    logger.info(f"Team deleted: {scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "team.delete")

    return None


@router.post("/{slug}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave(
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.TEAM_SETTINGS, Action.LEAVE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """Leave the team. The last OWNER must hand over ownership first."""
    leave_team(scope)
    scope.db.commit()

    background_tasks.add_task(audit.record, scope.decision, "member.leave")

    return None
