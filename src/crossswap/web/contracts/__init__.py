"""Request and response contracts for the web layer."""

from crossswap.web.contracts.routes import (
    GasPriceResponse,
    OrderStatusResponse,
    OutcomeRequest,
    OutcomeResponse,
    PredictionRequest,
    PredictionResponse,
    ProviderStatusResponse,
    RouteRequest,
    RouteResponse,
    RouteResponseItem,
)

__all__ = [
    "RouteRequest",
    "RouteResponse",
    "RouteResponseItem",
    "ProviderStatusResponse",
    "PredictionRequest",
    "PredictionResponse",
    "OutcomeRequest",
    "OutcomeResponse",
    "OrderStatusResponse",
    "GasPriceResponse",
]
