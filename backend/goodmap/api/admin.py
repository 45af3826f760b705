from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Optional
import logging
import math

from goodmap.core.database import get_db
from goodmap.core.exceptions import NotFoundError, RateLimitedError, UnauthorizedError
from goodmap.models import User
from goodmap.auth.password import password_manager
from goodmap.auth.jwt_manager import jwt_manager
from goodmap.auth.rate_limiter import rate_limiter
from goodmap.auth.middleware import CurrentUser, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    is_admin: bool
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Authenticate an admin and issue a session token (also set as an HttpOnly cookie)."""
    app_settings = request.app.state.settings

    # Check rate limiting
    can_attempt, lockout_until = rate_limiter.check_login_attempts(credentials.email)
    if not can_attempt:
        raise RateLimitedError(
            f"Too many login attempts. Try again after {lockout_until}",
            retry_after_seconds=max(1, math.ceil((lockout_until - datetime.now()).total_seconds()))
        )

    # Find user
    user = db.query(User).filter(User.email == credentials.email).first()
    if not user or not user.is_active:
        rate_limiter.record_login_attempt(credentials.email, False)
        raise UnauthorizedError("Invalid credentials")

    # Verify password
    if not password_manager.verify_password(credentials.password, user.hashed_password):
        rate_limiter.record_login_attempt(credentials.email, False)
        raise UnauthorizedError("Invalid credentials")

    # Check if password needs rehashing
    if password_manager.needs_rehash(user.hashed_password):
        user.hashed_password = password_manager.hash_password(credentials.password)

    rate_limiter.record_login_attempt(credentials.email, True)

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    access_token = jwt_manager.create_access_token(user.id, user.is_admin)
    response.set_cookie(
        key=app_settings.admin_token_cookie_name,
        value=access_token,
        httponly=True,
        samesite="lax",
        max_age=int(jwt_manager.access_token_ttl.total_seconds()),
        path="/"
    )
    logger.info(f"Admin login: {user.email}")

    return LoginResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.post("/logout")
def logout(request: Request, response: Response):
    """Clear the session cookie. Tokens are stateless and expire on their own."""
    response.delete_cookie(request.app.state.settings.admin_token_cookie_name, path="/")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def get_current_admin_info(
    current_user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get current admin information."""
    user = db.get(User, current_user.user_id)
    if not user:
        raise NotFoundError("User not found")

    return user
