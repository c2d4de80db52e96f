from __future__ import annotations

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from .core import decode_token
from ..constants import UserRole
from ..database import get_db_session
from ..errors import ForbiddenError, UnauthorizedError
from ..models import User

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Resolve current user from the identity provider's JWT
# ---------------------------------------------------------------------------

def get_current_user(
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    session: Session = Depends(get_db_session),
) -> User:
    """
    Accepts ``Authorization: Bearer <jwt>`` whose ``sub`` is a user id.
    Returns the matching active User or raises UNAUTHORIZED.
    """
    if not bearer or not bearer.credentials:
        raise UnauthorizedError()

    try:
        payload = decode_token(bearer.credentials)
        user_id = int(payload.get("sub", ""))
    except (JWTError, ValueError):
        raise UnauthorizedError("Invalid or expired token")

    user = session.get(User, user_id)
    if not user or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    return user


# ---------------------------------------------------------------------------
# Role guards
# ---------------------------------------------------------------------------

def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN.value:
        raise ForbiddenError("Admin access required")
    return current_user


def require_any(current_user: User = Depends(get_current_user)) -> User:
    """Any authenticated user."""
    return current_user
