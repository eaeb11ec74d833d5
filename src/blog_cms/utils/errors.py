"""
# Blog Error Taxonomy

Domain exceptions raised by the managers and dependencies. Each carries the HTTP
status it maps to, so the exception handlers in `blog_cms.main` can render the
standard `{success: false, message, error?}` envelope without guessing.

| Exception               | Status | Meaning                                     |
|-------------------------|--------|---------------------------------------------|
| `ValidationError`       | 400    | Malformed or missing input                  |
| `AuthenticationError`   | 401    | No or invalid credentials                   |
| `AuthorizationError`    | 403    | Authenticated but not owner / not admin     |
| `NotFoundError`         | 404    | Referenced entity does not exist            |
| `DomainConstraintError` | 400    | Request violates a data-model invariant     |
| `UnexpectedError`       | 500    | Anything else; detail hidden in production  |
"""

from typing import Any, List, Optional


class BlogError(Exception):
    """Base class for all caller-distinguishable failures."""

    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.errors = errors


class ValidationError(BlogError):
    status_code = 400


class AuthenticationError(BlogError):
    status_code = 401


class AuthorizationError(BlogError):
    status_code = 403


class NotFoundError(BlogError):
    status_code = 404


class DomainConstraintError(BlogError):
    status_code = 400


class UnexpectedError(BlogError):
    status_code = 500
