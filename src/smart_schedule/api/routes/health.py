"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/engine", status_code=status.HTTP_200_OK)
async def health_engine(request: Request) -> dict:
    """Check optimization engine reachability."""
    engine = request.app.state.engine_client
    try:
        healthy = await engine.check_health()
        return {"service": "optimization-engine", "base_url": settings.engine_base_url, "healthy": healthy}
    except Exception as e:
        return {"service": "optimization-engine", "healthy": False, "error": str(e)}


@router.get("/health/cache", status_code=status.HTTP_200_OK)
def health_cache(request: Request) -> dict:
    """Report schedule cache size and TTL."""
    cache = request.app.state.schedule_cache
    return {
        "service": "schedule-cache",
        "entries": len(cache),
        "ttl_seconds": int(cache.ttl.total_seconds()),
    }
