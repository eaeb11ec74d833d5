"""
# Auth Manager

Bearer token handling for the API. Tokens are HS256 JWTs carrying:

- `sub`: the user id (24-hex ObjectId string)
- `role`: `user` or `admin`
- `exp`: expiry

Login and registration are handled elsewhere; `create_access_token` exists for
tooling, seeding scripts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from blog_cms.config import settings
from blog_cms.managers.logging_manager import get_logger
from blog_cms.utils.errors import AuthenticationError

logger = get_logger(prefix="[Auth Manager]")

USER_ROLES = ("user", "admin")


def _secret() -> str:
    return settings.SECRET_KEY.get_secret_value()


def create_access_token(user_id: str, role: str = "user", expires_delta: Optional[timedelta] = None) -> str:
    if role not in USER_ROLES:
        raise ValueError(f"role must be one of {USER_ROLES}")
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(payload, _secret(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify `token` and return its claims.

    Raises:
        AuthenticationError: If the token is expired, tampered with or has no subject.
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as e:
        logger.info("Rejected expired token")
        raise AuthenticationError("Token expired, please login again") from e
    except JWTError as e:
        logger.info("Rejected invalid token: %s", e)
        raise AuthenticationError("Not authorized, token failed") from e

    if not payload.get("sub"):
        raise AuthenticationError("Not authorized, token failed")
    return payload
