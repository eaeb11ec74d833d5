"""
# Logging Manager

Thin layer over the standard library `logging` module that gives every component
a named logger with a bracketed prefix, e.g. `[Post Routes]` or `[DATABASE]`.

```python
from blog_cms.managers.logging_manager import get_logger

logger = get_logger(prefix="[Post Manager]")
logger.info("Created post %s", post_id)
```

The root `blog_cms` logger is configured once, on first use, with a stream handler
and the level from `settings.LOG_LEVEL`.
"""

import logging
import sys
from typing import Any, MutableMapping, Tuple

from blog_cms.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "blog_cms"

_configured = False


class PrefixedLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that prepends a fixed component prefix to each message."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        prefix = self.extra.get("prefix") if self.extra else None
        if prefix:
            return f"{prefix} {msg}", kwargs
        return msg, kwargs


def _configure_root_logger() -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    root.setLevel(level)
    root.propagate = False
    _configured = True


def get_logger(name: str = ROOT_LOGGER_NAME, prefix: str = "") -> PrefixedLoggerAdapter:
    """
    Return a prefixed logger under the `blog_cms` hierarchy.

    Args:
        name: Logger name. Names outside the `blog_cms` namespace are nested under it.
        prefix: Text prepended to every message, conventionally `[Component]`.

    Returns:
        PrefixedLoggerAdapter: Adapter exposing the usual `debug/info/warning/error` API.
    """
    _configure_root_logger()
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return PrefixedLoggerAdapter(logging.getLogger(name), {"prefix": prefix})
