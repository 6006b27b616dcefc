"""
Authentication Endpoints

Register, log in, and read the current actor.

Users are global actors; registering does not put anyone in a team.
Team access comes from creating a team (as OWNER) or accepting an
invitation. Tokens carry the user id only.
"""
from datetime import timedelta
from typing import NoReturn

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamkit.database import get_db, utcnow
from teamkit.models.user import User
from teamkit.schemas.auth import LoginRequest, Token, RegisterRequest
from teamkit.schemas.user import UserResponse
from teamkit.core.security import verify_password, get_password_hash, create_access_token
from teamkit.core.exceptions import AuthenticationError, ConflictError
from teamkit.api.deps import get_current_actor
from teamkit.config import get_settings
from teamkit.utils.logging import log_security_event, get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _reject_login(reason: str, detail: str = "Invalid credentials", **context) -> NoReturn:
    log_security_event("failed_login", {"reason": reason, **context})
    raise AuthenticationError(detail)


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchange email and password for a bearer token.

    SECURITY: Unknown email and wrong password give the same answer; the
    real reason only goes to the security log.
    """
    user = db.query(User).filter(User.email == credentials.email).first()

    if user is None:
        _reject_login("user_not_found", email=credentials.email)
    if not verify_password(credentials.password, user.hashed_password):
        _reject_login("invalid_password", actor_id=user.id)
    if not user.is_active:
        _reject_login("user_inactive", "User account is inactive", actor_id=user.id)

    access_token = create_access_token(
        {"sub": user.id},
        expires_delta=timedelta(minutes=get_settings().ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    user.last_login_at = utcnow()
    db.commit()

    logger.info(f"Successful login: user={user.id}")
    return Token(access_token=access_token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(registration: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account. Email verification happens outside this service."""
    if db.query(User).filter(User.email == registration.email).first():
        raise ConflictError("User with this email already exists")

    user = User(
        email=registration.email,
        hashed_password=get_password_hash(registration.password),
        full_name=registration.full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"New user registered: {user.id}")
    return user


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_actor)):
    return current_user
