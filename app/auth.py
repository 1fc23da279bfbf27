import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET
from .exceptions import ForbiddenError, UnauthorizedError
from .models import ROLE_ADMIN, ROLE_CARE_MANAGER
from .shared.dates import utcnow

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 by our own error handler
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity taken from the bearer token"""

    user_id: str
    org_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_care_manager(self) -> bool:
        return self.role == ROLE_CARE_MANAGER


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT

    Args:
        data: Claims to encode (userId, orgId, role)
        expires_delta: Token lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    """Verify the token signature and expiry and read the caller identity"""
    try:
        payload = jose_jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise UnauthorizedError("Invalid or expired token") from e

    user_id = payload.get("userId")
    org_id = payload.get("orgId")
    role = payload.get("role")
    if not user_id or not org_id or not role:
        logger.warning("JWT missing userId/orgId/role claims")
        raise UnauthorizedError("Invalid or expired token")

    return CurrentUser(user_id=str(user_id), org_id=str(org_id), role=str(role))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing Authorization header")
    return decode_access_token(credentials.credentials)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin role required")
    return user
