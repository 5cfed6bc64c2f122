"""
Authentication dependencies for FastAPI.

Tokens are issued by the identity service. This module only verifies them
and checks the user they name is still allowed in.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sendit.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from sendit.app.core.jwt import decode_access_token
from sendit.app.db.session import get_db
from sendit.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. Token signature and expiry
    2. Token carries a user_id
    3. User exists, is not deleted and is active (real-time check)

    Returns:
        Decoded token payload. `role` is refreshed from the database so a
        role change takes effect without re-issuing the token.

    Raises:
        AuthenticationError: 401 if the token or user is not valid
        InsufficientPermissionsError: 403 if the account is deactivated
    """
    payload = decode_access_token(credentials.credentials)

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise InsufficientPermissionsError("User account is inactive")

    payload["role"] = user.role.value
    payload.setdefault("sub", user.email)
    return payload
