"""Authentication dependencies: resolve the requesting user from a JWT issued by the user service."""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

import config

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == config.ADMIN_ROLE


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": detail},
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail={"message": detail})


def decode_token(token: str) -> Optional[dict]:
    """Returns the token payload, or None when the signature or expiry check fails."""
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Reads the bearer token, falling back to the auth cookie set at login."""
    token = credentials.credentials if credentials else request.cookies.get(config.AUTH_COOKIE_NAME)
    if not token:
        raise AuthenticationError("Authentication token missing")

    payload = decode_token(token)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    return CurrentUser(id=str(user_id), role=payload.get("role"))


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user
