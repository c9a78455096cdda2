"""Services for the web layer."""

from crossswap.web.services.route_service import RouteService

__all__ = ["RouteService"]
