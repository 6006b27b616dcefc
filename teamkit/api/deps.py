"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization.

PATTERN: Every team route declares

    scope: TeamScope = Depends(authorize(Resource.PATIENTS, Action.READ))

which authenticates the actor, runs the access decision for the {slug}
in the path and hands back a TeamScope. A denied decision stops the
request before the handler body runs, so handlers only ever see a
verified team id.
"""
from typing import Callable, Optional
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from teamkit.config import get_settings
from teamkit.database import get_db
from teamkit.models.user import User
from teamkit.core.access import AccessDecider, AccessDecision, DenyReason
from teamkit.core.audit import AuditTrail
from teamkit.core.permissions import Action, PermissionMatrix, Resource
from teamkit.core.scoping import TeamScope
from teamkit.core.security import token_subject
from teamkit.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    FeatureDisabledError,
    TeamNotFoundError,
)
from teamkit.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

# auto_error=False so a missing header is our 401, not FastAPI's default
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    The user behind the bearer token.

    Missing, invalid or expired tokens, unknown users and inactive
    accounts are all 401.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    user_id = token_subject(credentials.credentials)
    if user_id is None:
        raise AuthenticationError("Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"Token for unknown user: {user_id}")
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    return user


def get_permission_matrix(request: Request) -> PermissionMatrix:
    """The matrix built at startup (see teamkit.main)."""
    return request.app.state.permission_matrix


def get_access_decider(matrix: PermissionMatrix = Depends(get_permission_matrix)) -> AccessDecider:
    return AccessDecider(matrix)


def get_audit_trail(request: Request) -> AuditTrail:
    return request.app.state.audit_trail


def deny_to_http(decision: AccessDecision) -> HTTPException:
    """
    Map a denied decision to the external error.

    NOT_A_MEMBER is a 404 by default so outsiders can't discover which
    teams exist. INSUFFICIENT_ROLE is a 403: the caller already knows
    the team exists.
    """
    if decision.reason == DenyReason.NOT_A_MEMBER:
        if get_settings().NOT_A_MEMBER_STATUS_CODE == 403:
            return AccessDeniedError()
        return TeamNotFoundError()
    return AccessDeniedError()


def authorize(resource: Resource, action: Action) -> Callable:
    """
    Build a dependency that gates a team route on (resource, action).

    Resource and action are checked here, at import time of the router,
    so a typo fails on startup rather than on the first request.
    """
    resource = Resource(resource)
    action = Action(action)

    async def dependency(
        slug: str,
        current_user: User = Depends(get_current_actor),
        db: Session = Depends(get_db),
        decider: AccessDecider = Depends(get_access_decider),
    ) -> TeamScope:
        try:
            decision = decider.decide(db, current_user.id, slug, resource, action)
        except TeamNotFoundError:
            log_security_event(
                "team_not_found",
                {"actor_id": current_user.id, "team_identifier": slug}
            )
            raise

        if decision.denied:
            log_security_event(
                "access_denied",
                {
                    "actor_id": decision.actor_id,
                    "team_id": decision.team_id,
                    "reason": decision.reason.value,
                    "resource": resource.value,
                    "action": action.value,
                }
            )
            raise deny_to_http(decision)

        return TeamScope(db, decision)

    return dependency


def require_feature(flag: str) -> Callable:
    """
    Gate a router on a global feature setting, e.g. FEATURE_PATIENTS.

    Disabled features answer 404 as if the route did not exist.
    """

    def dependency() -> None:
        if not getattr(get_settings(), flag):
            raise FeatureDisabledError()

    return dependency
