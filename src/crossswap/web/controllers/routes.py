"""Route, prediction, outcome, order and gas endpoints."""

from fastapi import APIRouter, Depends, Request

from crossswap.utils.rate_limit import client_id_from_headers
from crossswap.web.contracts.routes import (
    GasPriceResponse,
    OrderStatusResponse,
    OutcomeResponse,
    PredictionRequest,
    PredictionResponse,
    RouteRequest,
    RouteResponse,
)
from crossswap.web.services.route_service import RouteService

router = APIRouter(tags=["routes"])


def get_route_service(request: Request) -> RouteService:
    """The application's service instance (set up by create_app)."""
    return request.app.state.route_service


def get_client_id(request: Request) -> str:
    headers = request.headers
    return client_id_from_headers(
        headers.get("x-forwarded-for"),
        headers.get("x-real-ip"),
        headers.get("user-agent"),
        request.client.host if request.client else None,
    )


@router.post("/routes", response_model=RouteResponse)
async def get_routes(
    body: RouteRequest,
    service: RouteService = Depends(get_route_service),
    client_id: str = Depends(get_client_id),
) -> RouteResponse:
    """Get ranked routes for a token pair and amount.

    Quotes only: nothing is signed or executed.
    """
    return await service.get_routes(body, client_id=client_id)


@router.post("/routes/predict", response_model=PredictionResponse)
async def predict(
    body: PredictionRequest,
    service: RouteService = Depends(get_route_service),
    client_id: str = Depends(get_client_id),
) -> PredictionResponse:
    """Predict slippage, gas, success probability and timing for a swap."""
    return await service.predict(body, client_id=client_id)


@router.post("/outcomes", response_model=OutcomeResponse)
async def record_outcome(
    request: Request,
    service: RouteService = Depends(get_route_service),
) -> OutcomeResponse:
    """Record a realized swap outcome.

    Fire-and-forget: always answers 200, malformed records are dropped.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    return service.record_outcome(payload if isinstance(payload, dict) else {})


@router.get("/orders/{order_id}", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: str,
    chain_id: int = 1,
    service: RouteService = Depends(get_route_service),
) -> OrderStatusResponse:
    """Get the status of a submitted Fusion order."""
    return await service.get_order_status(order_id, chain_id)


@router.get("/gas/{chain_id}", response_model=GasPriceResponse)
async def get_gas(
    chain_id: int,
    service: RouteService = Depends(get_route_service),
) -> GasPriceResponse:
    """Get gas presets with a recommendation for a chain."""
    return await service.get_gas(chain_id)
