from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from redis import RedisError
from sqlalchemy.exc import SQLAlchemyError

from retailops.utils.cache import CacheService, get_cache

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Basic health check endpoint."
)
def health_check():
    """Simple health check."""
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if all services (DB, Redis) are ready."
)
def readiness_check(request: Request, cache: CacheService = Depends(get_cache)):
    """
    Readiness check for all dependencies.

    Returns status of:
    - Database connection
    - Redis connection (reported as disabled when caching is off)
    """
    checks = {
        "database": False,
        "redis": False
    }

    # Check database
    try:
        with request.app.state.database.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            checks["database"] = True
    except SQLAlchemyError as e:
        checks["database_error"] = str(e)

    # Check Redis
    if cache.enabled:
        try:
            checks["redis"] = cache.ping()
        except RedisError as e:
            checks["redis_error"] = str(e)
    else:
        checks["redis"] = "disabled"

    # Determine overall status
    all_healthy = checks["database"] is True and checks["redis"] in (True, "disabled")

    return {
        "status": "ready" if all_healthy else "not_ready",
        "checks": checks
    }
