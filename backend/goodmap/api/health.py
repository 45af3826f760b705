from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from goodmap.core.cache import PostCache
from goodmap.models import Marker, Post
from datetime import datetime
from typing import Dict, Any
import logging
import time

router = APIRouter()
logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database(session_factory) -> Dict[str, Any]:
    """Round-trip to the database and count the board's rows."""
    started = time.perf_counter()
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
            marker_count = db.scalar(select(func.count(Marker.id)))
            post_count = db.scalar(select(func.count(Post.id)))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e), "latency_ms": _elapsed_ms(started)}

    return {
        "status": "healthy",
        "marker_count": marker_count,
        "post_count": post_count,
        "latency_ms": _elapsed_ms(started)
    }


def check_cache(post_cache: PostCache) -> Dict[str, Any]:
    """Ping the post list cache. The board keeps working without it, only slower."""
    started = time.perf_counter()
    reachable = post_cache.ping()
    return {
        "status": "healthy" if reachable else "degraded",
        "backend": type(post_cache).__name__,
        "latency_ms": _elapsed_ms(started)
    }


@router.get("/healthz")
def health_check(request: Request):
    """
    Dependency health check.
    Returns 200 while the database is reachable (a cache outage only marks the
    service degraded) and 503 otherwise.
    """
    checks = {
        "database": check_database(request.app.state.session_factory),
        "cache": check_cache(request.app.state.post_cache)
    }

    if checks["database"]["status"] != "healthy":
        overall_status = "unhealthy"
    elif checks["cache"]["status"] != "healthy":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    body = {
        "status": overall_status,
        "timestamp": datetime.now().isoformat(),
        "checks": checks,
        "version": request.app.version
    }
    return JSONResponse(status_code=503 if overall_status == "unhealthy" else 200, content=body)


@router.get("/health")
async def simple_health_check():
    """Liveness probe for load balancers."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
