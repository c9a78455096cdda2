"""Health check endpoints."""

from fastapi import APIRouter, Request

from crossswap import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "crossswap"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration and runtime stats."""
    service = request.app.state.route_service
    return {
        "status": "healthy",
        "service": "crossswap",
        "version": __version__,
        "config": service.settings.get_safe_dict(),
        "stats": service.stats(),
    }
