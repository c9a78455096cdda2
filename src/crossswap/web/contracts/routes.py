"""Route, prediction and outcome request/response contracts."""

from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from crossswap.routing.base import UserPreference


class RouteRequest(BaseModel):
    """Request for ranked swap routes."""

    from_token: str = Field(..., min_length=1, description="Source token symbol or address (e.g., BTC, ETH)")
    to_token: str = Field(..., min_length=1, description="Destination token symbol or address")
    amount: Decimal = Field(..., description="Amount to swap in human-readable units")
    chain_id: Optional[int] = Field(None, description="Chain used to resolve token symbols")
    wallet_address: Optional[str] = Field(None, description="Taker wallet address")
    preferred_provider: Optional[str] = Field(None, description="Query only this provider")
    preference: UserPreference = Field(
        default=UserPreference.BALANCED,
        description="Scoring preference: balanced, speed, cost or security",
    )
    slippage: Optional[Decimal] = Field(
        default=Decimal("0.5"),
        description="Slippage tolerance in percent, (0, 100]",
    )
    gas_price: Optional[Union[int, str]] = Field(
        None,
        description="Gas preset (slow, standard, fast, instant) or price in wei",
    )


class RouteStepResponse(BaseModel):
    protocol: str
    from_token: str
    to_token: str
    amount_in: str
    estimated_out: str
    fee: str


class RouteResponseItem(BaseModel):
    """One scored route."""

    id: str
    provider: str
    from_token: str
    to_token: str
    amount: str
    amount_base_units: str
    estimated_output: str
    estimated_output_base_units: str
    steps: list[RouteStepResponse]
    estimated_gas: int
    estimated_time: int
    price_impact: float
    risks: list[str] = Field(default_factory=list)
    advantages: list[str] = Field(default_factory=list)
    gas_price: str = "0"
    quote_id: Optional[str] = None
    confidence: float = Field(..., ge=0, le=1)
    risk_score: float = Field(..., ge=0, le=1)
    savings_estimate: float
    execution_time: int
    gas_optimization: float


class ProviderStatusResponse(BaseModel):
    provider: str
    status: str
    routes: int = 0
    reason: Optional[str] = None
    error_kind: Optional[str] = None


class RouteResponse(BaseModel):
    """Ranked routes for a request."""

    success: bool = Field(..., description="Whether the request was served")
    from_token: str
    to_token: str
    amount: str
    routes: list[RouteResponseItem] = Field(default_factory=list)
    best_route: Optional[RouteResponseItem] = None
    insights: list[str] = Field(default_factory=list)
    providers: list[ProviderStatusResponse] = Field(default_factory=list)
    cached: bool = Field(False, description="Served from the quote cache")


class PredictionRequest(RouteRequest):
    """Request for predicted swap parameters."""


class PredictionResponse(BaseModel):
    """Predicted parameters for a swap."""

    success: bool
    from_token: str
    to_token: str
    amount: str
    optimal_slippage: float = Field(..., gt=0, lt=1, description="Fraction, 0.005 = 0.5%")
    predicted_gas: int
    success_probability: float = Field(..., ge=0, le=1)
    estimated_time: int = Field(..., gt=0)
    recommended_route: Optional[dict] = None
    route_ordering: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)


class OutcomeRequest(BaseModel):
    """A realized swap outcome. Loosely typed; bad records are dropped server-side."""

    from_token: str = Field(..., min_length=1)
    to_token: str = Field(..., min_length=1)
    amount: str = "0"
    route_path: Union[str, list[str]] = ""
    duration_seconds: float = 0
    gas_cost: int = 0
    slippage: float = 0
    success: bool = False


class OutcomeResponse(BaseModel):
    success: bool = True
    recorded: int = Field(..., description="Outcomes held by the recorder")


class OrderStatusResponse(BaseModel):
    """Status of a submitted Fusion order."""

    success: bool
    order_id: str
    status: str
    tx_hash: Optional[str] = None
    fills: list[dict] = Field(default_factory=list)
    error: Optional[str] = None


class GasPriceResponse(BaseModel):
    """Gas presets and network reading for a chain."""

    success: bool
    chain_id: int
    presets: dict[str, str]
    base_fee: str
    recommendation: str
    trend: str
    optimal_timing: str
    is_fallback: bool = False
