"""Caller identity forwarded from the originating request.

The bearer token is an HS256 JWT carrying ``org_id`` and ``user_id`` claims.
The raw token is kept so it can be forwarded to the cron script service.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from ..core.config import get_settings_instance
from ..core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    org_id: str
    user_id: str
    token: str

    @property
    def authorization_header(self) -> str:
        return f"bearer {self.token}"


class JWTManager:
    """Verify bearer tokens and extract the caller's claims"""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        settings = get_settings_instance()
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm

        if not self.secret_key:
            raise ValueError("JWT_SECRET_KEY not configured in settings")

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verify and decode JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            return None

    def auth_context_from_token(self, token: str) -> AuthContext:
        payload = self.verify_token(token)
        if not payload:
            raise AuthenticationError()
        org_id = payload.get("org_id")
        if not org_id:
            raise AuthenticationError("Token has no org claim")
        return AuthContext(org_id=str(org_id), user_id=str(payload.get("user_id") or ""), token=token)
