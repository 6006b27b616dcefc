"""
Custom Exceptions

Centralized exception definitions for better error handling.
FastAPI automatically converts the HTTPException subclasses to HTTP
responses.

NOTE: Expected authorization outcomes (not a member, insufficient role)
are NOT exceptions in the core; they are AccessDecision results. The
route layer converts a deny into AccessDeniedError / RecordNotFoundError.
ConfigurationGapError is the startup-only channel and is deliberately
not an HTTPException.
"""
from typing import Iterable, Optional, Tuple
from fastapi import HTTPException, status


class TeamNotFoundError(HTTPException):
    """Raised when a team identifier does not resolve to any team."""

    def __init__(self, team_identifier: str = ""):
        self.team_identifier = team_identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team not found"
        )


class RecordNotFoundError(HTTPException):
    """
    Raised when a team-scoped record cannot be found.

    SECURITY: Also used when the record exists but belongs to another
    team. Callers must never be able to tell the two apart.
    """

    def __init__(self, record_type: str = "Record", record_id: str = ""):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{record_type} not found: {record_id}" if record_id else f"{record_type} not found"
        )


class AccessDeniedError(HTTPException):
    """Raised by the route layer when a member lacks the required role."""

    def __init__(self, detail: str = "You are not allowed to perform this action", status_code: int = status.HTTP_403_FORBIDDEN):
        super().__init__(
            status_code=status_code,
            detail=detail
        )


class AuthenticationError(HTTPException):
    """Raised when authentication fails."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class TeamIsolationError(HTTPException):
    """
    Raised when code tries to cross or rewrite a team boundary.

    This is a CRITICAL security error and should be logged/alerted on.
    It signals a programming error (scoping with an unverified team id,
    moving a record between teams), never a user mistake.
    """

    def __init__(self, detail: str = "Team isolation violation"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class DuplicateMembershipError(HTTPException):
    """Raised when an actor already has a membership in the team."""

    def __init__(self, detail: str = "User is already a member of this team"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class ConflictError(HTTPException):
    """Raised on unique constraint conflicts (slug taken, etc.)."""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class InvalidInputError(HTTPException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class FeatureDisabledError(HTTPException):
    """Raised when a route belongs to a feature that is switched off."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not Found"
        )


Cell = Tuple[object, object, object]


class ConfigurationGapError(Exception):
    """
    Raised at startup when the permission table is incomplete.

    missing: (role, resource, action) cells with no explicit True/False
    unknown: cells defined for actions the resource does not declare

    This must stop the process. It is never handled at request time.
    """

    def __init__(self, missing: Optional[Iterable[Cell]] = None, unknown: Optional[Iterable[Cell]] = None):
        self.missing = list(missing or [])
        self.unknown = list(unknown or [])
        parts = []
        if self.missing:
            parts.append("missing entries: " + ", ".join(self._fmt(c) for c in self.missing))
        if self.unknown:
            parts.append("unknown entries: " + ", ".join(self._fmt(c) for c in self.unknown))
        super().__init__("Permission matrix incomplete; " + "; ".join(parts))

    @staticmethod
    def _fmt(cell: Cell) -> str:
        return ":".join(getattr(part, "value", str(part)) for part in cell)
