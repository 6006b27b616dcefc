"""
Role Model

Three roles with a strict hierarchy: OWNER > ADMIN > MEMBER.

IMPORTANT: The ordering is for display and ergonomics ("is at least
ADMIN?"). It never decides access. Authorization is table-driven in
teamkit.core.permissions so a new action is never granted to higher
roles just because of where they sit in the ordering.
"""
import enum


class Role(str, enum.Enum):
    """
    Team membership roles.

    OWNER: Created the team (or was promoted), can delete it
    ADMIN: Manages members, billing and integrations
    MEMBER: Day-to-day access to team data
    """
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


ROLE_RANK = {
    Role.MEMBER: 1,
    Role.ADMIN: 2,
    Role.OWNER: 3,
}


def at_least(role: Role, threshold: Role) -> bool:
    """Return True if role sits at or above threshold in the hierarchy."""
    return ROLE_RANK[Role(role)] >= ROLE_RANK[Role(threshold)]
