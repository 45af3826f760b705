from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.engine import Engine
from typing import Optional
import time
import uuid
import logging
from contextlib import asynccontextmanager

from goodmap import __version__
from goodmap.core.config import Settings, settings
from goodmap.core.cache import PostCache, build_post_cache
from goodmap.core.database import Base, build_engine, build_session_factory
from goodmap.core.exceptions import GoodMapError, RateLimitedError
from goodmap.api import admin, health, markers, metrics, posts, sitemap
from goodmap.api.metrics import metrics_collector

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

UNMATCHED_ROUTE = "<unmatched>"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error_response(request: Request, status_code: int, message, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "status_code": status_code, "request_id": _request_id(request)},
        headers=headers
    )


def _validation_message(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", "invalid"))
    return "; ".join(parts) or "Invalid request"


def _install_middleware(app: FastAPI, app_settings: Settings):
    # Starlette runs the last registered middleware first, so the request id
    # is assigned before timing and headers are handled.
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request and record its duration under the route template."""
        started = time.perf_counter()
        logger.info(
            "Request started",
            extra={
                "request_id": _request_id(request),
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        # Unmatched URLs share one label so arbitrary paths cannot add series
        route = request.scope.get("route")
        metrics_collector.record_request(
            f"{request.method} {route.path if route else UNMATCHED_ROUTE}",
            duration_ms
        )
        logger.info(
            "Request completed",
            extra={
                "request_id": _request_id(request),
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2)
            }
        )
        return response

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if app_settings.environment == "production":
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])


def _install_exception_handlers(app: FastAPI):
    @app.exception_handler(GoodMapError)
    async def goodmap_exception_handler(request: Request, exc: GoodMapError):
        """Map service-layer errors to their status codes."""
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        if exc.status_code >= 500:
            logger.error(f"Service error: {exc.message}", exc_info=True)
        return _error_response(request, exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed or missing fields are a 400, not FastAPI's default 422."""
        return _error_response(request, 400, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {exc}",
            extra={"request_id": _request_id(request), "exception_type": type(exc).__name__},
            exc_info=True
        )
        return _error_response(request, 500, "Internal server error")


def create_app(
    app_settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    post_cache: Optional[PostCache] = None
) -> FastAPI:
    """Build the API application.

    The database engine and the post cache are created once per process and
    shared by every request through ``app.state``. Either can be passed in
    (tests use SQLite and an in-memory cache); otherwise they are built from
    settings at startup.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting GoodMap API ({app_settings.environment})")

        if app.state.engine is None:
            app.state.engine = build_engine(app_settings.database_url)
            app.state.session_factory = build_session_factory(app.state.engine)
        if app.state.post_cache is None:
            app.state.post_cache = build_post_cache(
                app_settings.redis_url,
                ttl_seconds=app_settings.posts_cache_ttl_seconds,
                enabled=app_settings.cache_enabled
            )

        Base.metadata.create_all(bind=app.state.engine)

        yield

        logger.info("Shutting down GoodMap API")
        if engine is None:
            app.state.engine.dispose()

    app = FastAPI(
        title="GoodMap API",
        description="Community map bulletin board: markers, posts and likes",
        version=__version__,
        lifespan=lifespan
    )

    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine) if engine is not None else None
    app.state.post_cache = post_cache

    _install_middleware(app, app_settings)
    _install_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(metrics.router, tags=["metrics"])
    app.include_router(admin.router)
    app.include_router(markers.router)
    app.include_router(posts.router)
    app.include_router(sitemap.router)

    @app.get("/")
    async def root():
        return {
            "message": "GoodMap API",
            "version": __version__,
            "docs": "/docs",
            "health": "/healthz"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "goodmap.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level="info"
    )
