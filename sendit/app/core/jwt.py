"""
JWT access tokens.

Production tokens come from the identity service and are only verified
here. `issue_token` signs tokens with the same key for seeding and tests.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from sendit.app.core.config import settings
from sendit.app.core.exceptions import AuthenticationError


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a payload. It should carry `sub` (email), `user_id` and `role`:

        {"sub": "jane@example.com", "user_id": 123, "role": "COURIER"}
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def issue_token(user, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        {"sub": user.email, "user_id": user.id, "role": user.role.value},
        expires_delta,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        AuthenticationError: expired, malformed or wrongly signed token
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Could not validate credentials")
