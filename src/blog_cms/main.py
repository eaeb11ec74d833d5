"""
# Blog CMS API

FastAPI application for the blog CMS: posts, categories and threaded comments over
MongoDB.

## Application Lifecycle

`lifespan()` runs the startup sequence before the first request is accepted:

1.  **Database**: connect to MongoDB (with retry/backoff).
2.  **Indexes**: create or verify the indexes the queries depend on, including the
    `posts` text index used by search.
3.  **Seeding**: insert the default categories when `MONGODB_SEED_DEFAULTS` is on and
    the collection is empty.

On shutdown, in-flight background view increments are given the chance to finish and
the MongoDB client is closed.

## Error Envelope

Every failure leaves the API in the same shape:

```json
{"success": false, "message": "Post not found"}
```

| Source                              | Status | `message`                      |
|-------------------------------------|--------|--------------------------------|
| `BlogError` subclasses              | own    | the error message              |
| `RequestValidationError`            | 400    | `Validation failed` + `errors` |
| `HTTPException` (e.g. unknown path) | own    | the exception detail           |
| anything else                       | 500    | `Server error`                 |

`error` carries the internal detail, and only when `DEBUG` is on.

## Running

```bash
uvicorn blog_cms.main:app --reload --port 5000
```

Attributes:
    app (FastAPI): The application instance served by uvicorn.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import time
from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
import uvicorn

from blog_cms import __version__
from blog_cms.config import settings
from blog_cms.database import db_manager
from blog_cms.managers.logging_manager import get_logger
from blog_cms.managers.post_manager import post_manager
from blog_cms.models.blog_models import ErrorResponse, HealthResponse
from blog_cms.routes import api_routers
from blog_cms.utils.errors import BlogError

logger = get_logger(prefix="[Blog CMS]")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Connect, index and seed on startup; drain background work and disconnect on shutdown."""
    startup_start_time = time.time()
    logger.info(
        "Starting Blog CMS API v%s (%s)", __version__, "production" if settings.is_production else "development"
    )

    await db_manager.connect()
    await db_manager.create_indexes()
    if settings.MONGODB_SEED_DEFAULTS:
        await db_manager.seed_default_categories()

    logger.info("Startup completed in %.3fs", time.time() - startup_start_time)
    try:
        yield
    finally:
        logger.info("Shutting down Blog CMS API")
        drained = await post_manager.drain_background_tasks()
        if drained:
            logger.info("Waited for %d background view increments", drained)
        await db_manager.disconnect()
        logger.info("Shutdown completed")


def error_response(
    status_code: int, message: str, detail: Optional[str] = None, errors: Optional[List[Any]] = None
) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        error=detail if not settings.is_production else None,
        errors=errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)
    else:
        logger.debug("%s %s rejected with %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message, exc.detail, exc.errors)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    logger.debug("%s %s failed validation: %s", request.method, request.url.path, errors)
    return error_response(400, "Validation failed", errors=errors)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = error_response(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return error_response(500, "Server error", str(exc))


def create_app(enable_metrics: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        enable_metrics: Mount the Prometheus `/metrics` endpoint. The default registry
            only accepts one instrumented app per process.
    """
    application = FastAPI(
        title="Blog CMS API",
        description="Posts, categories and threaded comments for a blog content management system.",
        version=__version__,
        lifespan=lifespan,
    )

    logger.info("Configuring CORS with origins: %s", settings.cors_origins_list)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    application.add_exception_handler(BlogError, blog_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)

    for router in api_routers:
        application.include_router(router, prefix=settings.API_PREFIX)
        logger.debug("Included router with tags %s", router.tags)

    @application.get("/health", response_model=HealthResponse, tags=["health"])
    async def health():
        healthy = await db_manager.health_check()
        payload = HealthResponse(
            status="healthy" if healthy else "unhealthy",
            database=healthy,
            timestamp=datetime.now(timezone.utc),
        )
        return JSONResponse(status_code=200 if healthy else 503, content=payload.model_dump(mode="json"))

    if enable_metrics:
        try:
            instrumentator = Instrumentator(
                should_group_status_codes=True,
                should_ignore_untemplated=True,
                should_instrument_requests_inprogress=True,
            )
            instrumentator.instrument(application).expose(application, include_in_schema=False, endpoint="/metrics")
            logger.info("Prometheus metrics instrumentation configured successfully")
        except ValueError as e:
            logger.error("Failed to configure Prometheus metrics: %s", e)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run("blog_cms.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG, log_level="info")
