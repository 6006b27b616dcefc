"""
Passwords and access tokens.

passlib (bcrypt) for password hashes, python-jose for HS256 JWTs.

A token identifies the actor and nothing else (sub = user id). Team and
role are never put in it: they are read from the membership table on
every request, so a role change or removal applies to tokens that are
already out there.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from teamkit.config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """bcrypt hash. Slow on purpose; keep it out of loops."""
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a token for `data` (which must hold "sub").

    Adds exp and iat. The lifetime defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {**data, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad signature, expiry or garbage."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def token_subject(token: str) -> Optional[str]:
    """The actor id a valid token was issued for."""
    claims = decode_access_token(token)
    if not claims:
        return None
    return claims.get("sub") or None
