from uuid import UUID

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shulpay.core.config import settings
from shulpay.core.database import get_db
from shulpay.core.errors import AuthorizationError, PermissionDeniedError
from shulpay.repositories.user_role_repository import UserRoleRepository


def decode_access_token(token: str) -> UUID:
    """Validate a backend-issued access token and return the user id (``sub``)."""
    if not settings.AUTH_JWT_SECRET:
        raise AuthorizationError("Authentication is not configured")
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
        return UUID(str(claims["sub"]))
    except jwt.ExpiredSignatureError:
        raise AuthorizationError("Access token has expired") from None
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthorizationError("Unauthorized") from None


def get_current_user(request: Request) -> UUID:
    """Extract the authenticated user id from the ``Authorization`` header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthorizationError("Unauthorized")

    token = auth_header[7:]
    if not token:
        raise AuthorizationError("Unauthorized")
    return decode_access_token(token)


def require_shul_role(db: Session, user_id: UUID, shul_id: UUID) -> str:
    """Return the caller's role within ``shul_id`` or raise PermissionDeniedError."""
    role = UserRoleRepository(db).get_role(user_id, shul_id)
    if role is None:
        raise PermissionDeniedError("Permission denied")
    return role


def get_shul_admin(
    shul_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> UUID:
    """Dependency for tenant-scoped admin routes; returns the shul id once authorized."""
    require_shul_role(db, user_id, shul_id)
    return shul_id
