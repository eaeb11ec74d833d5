"""
# Blog API Client

One configured `httpx.AsyncClient` for talking to the blog CMS API, with the
cross-cutting behaviour every caller would otherwise repeat:

- **Token injection**: a request hook adds `Authorization: Bearer <token>` from the
  `TokenStore` when a token is present.
- **Error mapping**: a response hook turns error statuses into a user-facing
  notification and an `ApiClientError`. A 401 also clears the stored token.
- **Transport failures**: connection errors and timeouts notify
  "Network error. Please check your connection." and raise `ApiClientError`
  with no status code.

Successful calls return the decoded `{success, data, message?, pagination?}` envelope.

```python
async with BlogApiClient(token_store=TokenStore(token), notify=print) as client:
    envelope = await client.get("/posts", params={"page": 2})
```

Notifications go to the `notify` callable; by default they are logged at WARNING.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from blog_cms.config import settings
from blog_cms.managers.logging_manager import get_logger

logger = get_logger(prefix="[API Client]")

Notifier = Callable[[str], None]

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"
STATUS_MESSAGES: Dict[int, str] = {
    401: SESSION_EXPIRED_MESSAGE,
    403: "You do not have permission to perform this action",
    404: "The requested resource was not found",
    429: "Too many requests. Please try again later.",
    500: "Server error. Please try again later.",
}


class ApiClientError(Exception):
    """
    A failed API call.

    Attributes:
        status_code: HTTP status, or `None` when the request never got a response.
        message: Server-provided message when available, else the notification text.
        payload: Decoded error body (empty for transport failures or non-JSON bodies).
    """

    def __init__(self, status_code: Optional[int], message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class TokenStore:
    """In-memory holder for the bearer token."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: Optional[str]) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


def _log_notification(message: str) -> None:
    logger.warning("%s", message)


def notifications_for(status_code: int, payload: Mapping[str, Any]) -> List[str]:
    """
    User-facing messages for an error response.

    422 yields one message per field error; every other status yields exactly one.
    """
    if status_code == 422:
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            return [
                str(error.get("msg") or error.get("message") or "Validation failed")
                if isinstance(error, Mapping)
                else str(error)
                for error in errors
            ]
        return [payload.get("message") or "Validation failed"]
    if status_code in STATUS_MESSAGES:
        return [STATUS_MESSAGES[status_code]]
    return [payload.get("message") or DEFAULT_ERROR_MESSAGE]


class BlogApiClient:
    """
    Async client for the blog CMS REST API.

    Args:
        base_url: API root, defaults to `settings.API_BASE_URL`.
        token_store: Source of the bearer token; a fresh empty store by default.
        notify: Receives user-facing error messages.
        timeout: Seconds, defaults to `settings.API_CLIENT_TIMEOUT`.
        transport: Optional httpx transport (e.g. `httpx.MockTransport` in tests).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_store: Optional[TokenStore] = None,
        notify: Optional[Notifier] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_store = token_store or TokenStore()
        self.notify = notify or _log_notification
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.API_BASE_URL).rstrip("/"),
            headers={"Accept": "application/json"},
            timeout=timeout or settings.API_CLIENT_TIMEOUT,
            event_hooks={"request": [self._inject_token], "response": [self._check_response]},
            transport=transport,
        )

    async def __aenter__(self) -> "BlogApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _inject_token(self, request: httpx.Request) -> None:
        token = self.token_store.get()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        logger.debug("%s %s", request.method, request.url)

    async def _check_response(self, response: httpx.Response) -> None:
        request = response.request
        if response.is_success:
            logger.debug("%s %s -> %d", request.method, request.url, response.status_code)
            return

        await response.aread()
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        status_code = response.status_code
        logger.debug("%s %s -> %d %s", request.method, request.url, status_code, payload)
        if status_code == 401:
            self.token_store.clear()

        messages = notifications_for(status_code, payload)
        for message in messages:
            self.notify(message)
        raise ApiClientError(status_code, payload.get("message") or messages[0], payload)

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Dict[str, Any]:
        """
        Send a request and return the decoded envelope.

        `None` values in `params` are dropped; booleans are sent as `true`/`false`.

        Raises:
            ApiClientError: On any error status or transport failure.
        """
        query = None
        if params:
            query = {
                key: (str(value).lower() if isinstance(value, bool) else value)
                for key, value in params.items()
                if value is not None
            }

        kwargs: Dict[str, Any] = {"params": query}
        if json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.debug("%s %s failed: %s", method, url, e)
            self.notify(NETWORK_ERROR_MESSAGE)
            raise ApiClientError(None, "Network error") from e

        if not response.content:
            return {"success": True}
        try:
            return response.json()
        except ValueError as e:
            self.notify(DEFAULT_ERROR_MESSAGE)
            raise ApiClientError(response.status_code, "Invalid JSON response") from e

    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, data: Any = None) -> Dict[str, Any]:
        return await self.request("POST", url, json=data if data is not None else {})

    async def put(self, url: str, data: Any = None) -> Dict[str, Any]:
        return await self.request("PUT", url, json=data if data is not None else {})

    async def patch(self, url: str, data: Any = None) -> Dict[str, Any]:
        return await self.request("PATCH", url, json=data if data is not None else {})

    async def delete(self, url: str) -> Dict[str, Any]:
        return await self.request("DELETE", url)
