from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from goodmap.core.config import settings


class JWTManager:
    """Issues and validates signed admin session tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", access_token_expire_minutes: int = 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_ttl = timedelta(minutes=access_token_expire_minutes)

    def create_access_token(self, user_id: str, is_admin: bool) -> str:
        """Create a new access token."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "is_admin": bool(is_admin),
            "iat": now,
            "exp": now + self.access_token_ttl,
            "type": "access"
        }

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verify and decode an access token. Returns None when invalid or expired."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        # Check token type
        if payload.get("type") != "access" or not payload.get("sub"):
            return None

        return payload


# Global JWT manager instance
jwt_manager = JWTManager(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
)
