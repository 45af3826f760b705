from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from goodmap.auth.jwt_manager import jwt_manager
from goodmap.core.exceptions import ForbiddenError

# Security scheme for FastAPI. Anonymous requests are allowed through; the
# admin check happens in the dependencies below.
security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Context class to hold current user information."""
    def __init__(self, user_id: str, is_admin: bool):
        self.user_id = user_id
        self.is_admin = is_admin


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer header first, then the HttpOnly session cookie set at login."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(request.app.state.settings.admin_token_cookie_name)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """Dependency returning the signed-in user, or None for anonymous requests."""
    token = _extract_token(request, credentials)
    if not token:
        return None

    payload = jwt_manager.verify_access_token(token)
    if not payload:
        return None

    return CurrentUser(user_id=payload["sub"], is_admin=bool(payload.get("is_admin")))


async def get_optional_admin(current_user: Optional[CurrentUser] = Depends(get_current_user)) -> bool:
    """True when the request carries a valid admin session."""
    return bool(current_user and current_user.is_admin)


async def require_admin(current_user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    """Dependency for admin-only endpoints."""
    if not current_user or not current_user.is_admin:
        raise ForbiddenError("어드민 권한이 필요합니다.")
    return current_user
