"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crossswap import __version__
from crossswap.config import get_settings
from crossswap.errors import InvalidRequestError, RateLimitExceededError, RoutingError
from crossswap.web.services.route_service import RouteService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    service: RouteService = app.state.route_service
    service.maintenance.start()
    logger.info(f"Route service ready with {len(service.aggregator.providers)} provider(s)")
    yield
    # Shutdown
    await service.maintenance.stop()


async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
    """Map routing errors to their status class with a readable reason."""
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.reason}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(".".join(str(p) for p in e["loc"] if p != "body") for e in exc.errors()[:5])
    error = InvalidRequestError(f"Invalid request fields: {fields}" if fields else "Invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(service: Optional[RouteService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Route service to serve; built from settings when omitted
    """
    settings = get_settings()

    app = FastAPI(
        title="CrossSwap API",
        description="Cross-chain swap route aggregation API",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.route_service = service or RouteService(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RoutingError, routing_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Register routes
    from crossswap.api.routes import health
    from crossswap.web.controllers import routes

    app.include_router(health.router, tags=["Health"])
    app.include_router(routes.router, prefix="/api/v1", tags=["Routes"])

    return app
