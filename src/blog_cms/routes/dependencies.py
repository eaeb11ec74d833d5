"""
# Route Dependencies

FastAPI dependencies for authentication and role checks.

- **`get_current_user`**: decodes the bearer token, loads the user document and
  returns it (password hash excluded). Missing or bad tokens raise
  `AuthenticationError` (401).
- **`require_admin`**: chains `get_current_user` and raises `AuthorizationError` (403)
  for anyone whose role is not `admin`.

```python
@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, current_user: dict = Depends(require_admin)):
    ...
```

Attributes:
    oauth2_scheme (OAuth2PasswordBearer): Token extractor. `auto_error` is off so a
        missing header surfaces as the API's own 401 envelope.
"""

from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from blog_cms.config import settings
from blog_cms.database import db_manager
from blog_cms.managers.auth_manager import decode_access_token
from blog_cms.managers.blog_queries import is_object_id
from blog_cms.managers.logging_manager import get_logger
from blog_cms.utils.errors import AuthenticationError, AuthorizationError

logger = get_logger(prefix="[Auth Dependencies]")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """
    Resolve the authenticated user.

    Returns:
        dict: The user document with `role` defaulted to `user`.

    Raises:
        AuthenticationError: If there is no token, it does not verify, or the user is gone.
    """
    if not token:
        raise AuthenticationError("Not authorized, no token")

    payload = decode_access_token(token)
    if not is_object_id(payload["sub"]):
        raise AuthenticationError("Not authorized, token failed")

    user = await db_manager.get_collection("users").find_one({"_id": ObjectId(payload["sub"])}, projection={"password": 0})
    if user is None:
        logger.info("Token subject %s has no user document", payload["sub"])
        raise AuthenticationError("Not authorized, user not found")
    if user.get("is_active") is False:
        raise AuthenticationError("Account is deactivated")

    user.setdefault("role", payload.get("role", "user"))
    return user


async def require_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != "admin":
        logger.info("User %s denied admin-only action", current_user.get("_id"))
        raise AuthorizationError("Admin access required")
    return current_user
