"""API controllers for the web layer."""

from crossswap.web.controllers.routes import router as routes_router

__all__ = ["routes_router"]
