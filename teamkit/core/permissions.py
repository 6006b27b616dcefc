"""
Permission Matrix (RBAC)

The single source of truth for "may ROLE perform ACTION on RESOURCE".

DESIGN:
- Resources and actions are closed enums. Each resource declares which
  actions exist for it (RESOURCE_ACTIONS).
- The default table spells out every (role, resource, action) cell,
  True or False. A cell that is missing is a ConfigurationGapError when
  the matrix is built, so gaps surface at startup instead of silently
  evaluating to deny (or worse, allow) at request time.
- Once built, the matrix is read-only (nested MappingProxyType). Build it
  once at process start and pass it around; tests build their own.
"""
import enum
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Tuple

from teamkit.core.exceptions import ConfigurationGapError
from teamkit.core.roles import Role


class Resource(str, enum.Enum):
    """Categories of team-scoped data subject to access control."""
    TEAM_SETTINGS = "team_settings"
    MEMBERS = "members"
    INVITATIONS = "invitations"
    SSO = "sso"
    DIRECTORY_SYNC = "directory_sync"
    AUDIT_LOG = "audit_log"
    WEBHOOKS = "webhooks"
    BILLING = "billing"
    API_KEYS = "api_keys"
    PATIENTS = "patients"
    PATIENT_BASELINES = "patient_baselines"


class Action(str, enum.Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LEAVE = "leave"


_CRUD = frozenset({Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE})

# Which actions exist for which resource
RESOURCE_ACTIONS: Mapping[Resource, FrozenSet[Action]] = MappingProxyType({
    Resource.TEAM_SETTINGS: _CRUD | {Action.LEAVE},
    Resource.MEMBERS: _CRUD,
    Resource.INVITATIONS: frozenset({Action.CREATE, Action.READ, Action.DELETE}),
    Resource.SSO: _CRUD,
    Resource.DIRECTORY_SYNC: _CRUD,
    Resource.AUDIT_LOG: frozenset({Action.READ}),
    Resource.WEBHOOKS: _CRUD,
    Resource.BILLING: frozenset({Action.CREATE, Action.READ, Action.UPDATE}),
    Resource.API_KEYS: frozenset({Action.CREATE, Action.READ, Action.DELETE}),
    Resource.PATIENTS: _CRUD,
    Resource.PATIENT_BASELINES: _CRUD,
})


PermissionTable = Mapping[Role, Mapping[Resource, Mapping[Action, bool]]]


# Every cell is explicit. Do not derive one role's row from another's.
DEFAULT_PERMISSIONS: Dict[Role, Dict[Resource, Dict[Action, bool]]] = {
    Role.OWNER: {
        Resource.TEAM_SETTINGS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True,
            Action.DELETE: True, Action.LEAVE: True,
        },
        Resource.MEMBERS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.INVITATIONS: {Action.CREATE: True, Action.READ: True, Action.DELETE: True},
        Resource.SSO: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.DIRECTORY_SYNC: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.AUDIT_LOG: {Action.READ: True},
        Resource.WEBHOOKS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.BILLING: {Action.CREATE: True, Action.READ: True, Action.UPDATE: True},
        Resource.API_KEYS: {Action.CREATE: True, Action.READ: True, Action.DELETE: True},
        Resource.PATIENTS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.PATIENT_BASELINES: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
    },
    Role.ADMIN: {
        Resource.TEAM_SETTINGS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True,
            Action.DELETE: False, Action.LEAVE: True,
        },
        Resource.MEMBERS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.INVITATIONS: {Action.CREATE: True, Action.READ: True, Action.DELETE: True},
        Resource.SSO: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.DIRECTORY_SYNC: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.AUDIT_LOG: {Action.READ: True},
        Resource.WEBHOOKS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.BILLING: {Action.CREATE: True, Action.READ: True, Action.UPDATE: True},
        Resource.API_KEYS: {Action.CREATE: True, Action.READ: True, Action.DELETE: True},
        Resource.PATIENTS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
        Resource.PATIENT_BASELINES: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: True,
        },
    },
    Role.MEMBER: {
        Resource.TEAM_SETTINGS: {
            Action.CREATE: False, Action.READ: True, Action.UPDATE: False,
            Action.DELETE: False, Action.LEAVE: True,
        },
        Resource.MEMBERS: {
            Action.CREATE: False, Action.READ: True, Action.UPDATE: False, Action.DELETE: False,
        },
        Resource.INVITATIONS: {Action.CREATE: False, Action.READ: True, Action.DELETE: False},
        Resource.SSO: {
            Action.CREATE: False, Action.READ: False, Action.UPDATE: False, Action.DELETE: False,
        },
        Resource.DIRECTORY_SYNC: {
            Action.CREATE: False, Action.READ: False, Action.UPDATE: False, Action.DELETE: False,
        },
        Resource.AUDIT_LOG: {Action.READ: False},
        Resource.WEBHOOKS: {
            Action.CREATE: False, Action.READ: False, Action.UPDATE: False, Action.DELETE: False,
        },
        Resource.BILLING: {Action.CREATE: False, Action.READ: False, Action.UPDATE: False},
        Resource.API_KEYS: {Action.CREATE: False, Action.READ: False, Action.DELETE: False},
        Resource.PATIENTS: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: False,
        },
        Resource.PATIENT_BASELINES: {
            Action.CREATE: True, Action.READ: True, Action.UPDATE: True, Action.DELETE: False,
        },
    },
}


def find_gaps(
    table: PermissionTable,
    resource_actions: Mapping[Resource, FrozenSet[Action]] = RESOURCE_ACTIONS,
) -> Tuple[List[Tuple[Role, Resource, Action]], List[Tuple[Role, Resource, Action]]]:
    """
    Compare a permission table against the declared resource/action pairs.

    Returns (missing, unknown):
    - missing: cells the table should define but does not
    - unknown: cells the table defines for actions the resource doesn't have
    """
    missing = []
    unknown = []
    for role in Role:
        row = table.get(role, {})
        for resource, actions in resource_actions.items():
            cells = row.get(resource, {})
            for action in sorted(actions, key=lambda a: a.value):
                if not isinstance(cells.get(action), bool):
                    missing.append((role, resource, action))
            for action in cells:
                if action not in actions:
                    unknown.append((role, resource, action))
        for resource in row:
            if resource not in resource_actions:
                for action in row[resource]:
                    unknown.append((role, resource, action))
    return missing, unknown


class PermissionMatrix:
    """
    Immutable (role, resource, action) -> bool lookup table.

    Construction validates completeness and raises ConfigurationGapError
    on any missing or unknown cell. Lookups are two dict hits and default
    to deny for anything outside the table.
    """

    def __init__(
        self,
        table: PermissionTable,
        resource_actions: Mapping[Resource, FrozenSet[Action]] = RESOURCE_ACTIONS,
    ):
        # Coerce keys so raw strings fail here rather than at lookup time
        normalized = {
            Role(role): {
                Resource(resource): {Action(action): allowed for action, allowed in cells.items()}
                for resource, cells in row.items()
            }
            for role, row in table.items()
        }

        missing, unknown = find_gaps(normalized, resource_actions)
        if missing or unknown:
            raise ConfigurationGapError(missing=missing, unknown=unknown)

        self._resource_actions = MappingProxyType(dict(resource_actions))
        self._table = MappingProxyType({
            role: MappingProxyType({
                resource: MappingProxyType(cells)
                for resource, cells in row.items()
            })
            for role, row in normalized.items()
        })

    def is_allowed(self, role: Role, resource: Resource, action: Action) -> bool:
        """Look up a single cell. Anything not in the table is denied."""
        return self._table.get(role, {}).get(resource, {}).get(action, False) is True

    def allowed_actions(self, role: Role, resource: Resource) -> FrozenSet[Action]:
        """All actions the role may perform on the resource."""
        cells = self._table.get(role, {}).get(resource, {})
        return frozenset(action for action, allowed in cells.items() if allowed)

    @property
    def table(self) -> PermissionTable:
        return self._table

    def __repr__(self):
        return f"<PermissionMatrix roles={len(self._table)} resources={len(self._resource_actions)}>"


def build_default_matrix() -> PermissionMatrix:
    """
    Build the application's matrix from DEFAULT_PERMISSIONS.

    Call once at startup. Raises ConfigurationGapError if the table is
    incomplete.
    """
    return PermissionMatrix(DEFAULT_PERMISSIONS)
