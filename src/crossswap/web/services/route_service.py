"""Route service composing aggregation, prediction, insights and outcomes.

The service is built once per application (see api.app.create_app) and
handed to the controllers; it holds no module-level state.
"""

import logging
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError

from crossswap.config import Settings, get_settings
from crossswap.errors import InvalidRequestError, ProviderError, ProviderErrorKind
from crossswap.routing.aggregator import AggregationResult, RouteAggregator
from crossswap.routing.base import QuoteOptions
from crossswap.routing.factory import create_aggregator, create_gas_oracle
from crossswap.routing.fusion import FusionProvider
from crossswap.routing.gas import GasOracle, fallback_analysis
from crossswap.scoring.insights import InsightGenerator
from crossswap.scoring.outcomes import OutcomeRecorder
from crossswap.scoring.predictor import ParameterPredictor
from crossswap.tokens import Amount, Token, TokenRegistry
from crossswap.utils.maintenance import MaintenanceLoop
from crossswap.web.contracts.routes import (
    GasPriceResponse,
    OrderStatusResponse,
    OutcomeRequest,
    OutcomeResponse,
    PredictionRequest,
    PredictionResponse,
    RouteRequest,
    RouteResponse,
)

logger = logging.getLogger(__name__)


class RouteService:
    """Service for ranked routes, predictions and outcome feedback.

    Read-only with respect to user funds: quotes are fetched and ranked,
    nothing is signed or broadcast here.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[TokenRegistry] = None,
        aggregator: Optional[RouteAggregator] = None,
        recorder: Optional[OutcomeRecorder] = None,
        gas_oracle: Optional[GasOracle] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or TokenRegistry(default_chain_id=self.settings.default_chain_id)
        self.recorder = recorder or OutcomeRecorder()
        self.gas_oracle = gas_oracle if gas_oracle is not None else create_gas_oracle(self.settings)
        self.aggregator = aggregator or create_aggregator(
            self.settings,
            registry=self.registry,
            recorder=self.recorder,
            gas_oracle=self.gas_oracle,
        )
        self.predictor = ParameterPredictor(
            recorder=self.recorder,
            baseline_gas_units=self.settings.baseline_gas_units,
        )
        self.insights = InsightGenerator(risk_threshold=self.settings.risk_warning_threshold)
        self.maintenance = MaintenanceLoop(
            self.aggregator.cache,
            self.aggregator.rate_limiter,
            interval_seconds=self.settings.maintenance_interval_seconds,
        )

    def _resolve(self, request: RouteRequest) -> tuple[Token, Token, Amount]:
        from_token = self.registry.resolve(request.from_token, request.chain_id)
        to_token = self.registry.resolve(request.to_token, request.chain_id)
        if from_token.token_id == to_token.token_id:
            raise InvalidRequestError("Source and destination tokens must differ")

        if request.slippage is not None and not (Decimal("0") < request.slippage <= Decimal("100")):
            raise InvalidRequestError("Slippage must be greater than 0 and at most 100 percent")

        amount = Amount.from_decimal(request.amount, from_token.decimals)
        if not amount.is_positive:
            raise InvalidRequestError("Amount must be greater than zero")
        return from_token, to_token, amount

    async def _aggregate(
        self,
        request: RouteRequest,
        client_id: Optional[str],
    ) -> tuple[Token, Token, Amount, AggregationResult]:
        from_token, to_token, amount = self._resolve(request)
        options = QuoteOptions(
            gas_price=request.gas_price,
            slippage_percent=float(request.slippage) if request.slippage is not None else None,
        )
        result = await self.aggregator.aggregate(
            from_token,
            to_token,
            amount,
            wallet_address=request.wallet_address,
            preferred_provider=request.preferred_provider,
            preference=request.preference,
            options=options,
            client_id=client_id,
        )
        return from_token, to_token, amount, result

    async def get_routes(self, request: RouteRequest, client_id: Optional[str] = None) -> RouteResponse:
        """Get ranked routes.

        Raises:
            InvalidRequestError, RateLimitExceededError, AllProvidersUnavailableError
        """
        from_token, to_token, amount, result = await self._aggregate(request, client_id)
        routes = [r.to_dict() for r in result.routes]
        return RouteResponse(
            success=True,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount=amount.value,
            routes=routes,
            best_route=routes[0] if routes else None,
            insights=self.insights.get_insights(result.routes),
            providers=[s.to_dict() for s in result.provider_statuses],
            cached=result.cached,
        )

    async def predict(self, request: PredictionRequest, client_id: Optional[str] = None) -> PredictionResponse:
        """Predict swap parameters from the same ranked routes /routes returns."""
        from_token, to_token, amount, result = await self._aggregate(request, client_id)
        prediction = self.predictor.predict(from_token, to_token, amount, result.routes)
        return PredictionResponse(
            success=True,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount=amount.value,
            insights=self.insights.get_insights(result.routes),
            **prediction.to_dict(),
        )

    def record_outcome(self, payload) -> OutcomeResponse:
        """Record a realized outcome. Never raises; bad records are logged and dropped."""
        try:
            outcome = OutcomeRequest.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed outcome: {e}")
            return OutcomeResponse(recorded=len(self.recorder))

        self.recorder.record(
            outcome.from_token,
            outcome.to_token,
            outcome.amount,
            outcome.route_path,
            outcome.duration_seconds,
            outcome.gas_cost,
            outcome.slippage,
            outcome.success,
        )
        return OutcomeResponse(recorded=len(self.recorder))

    def _fusion_provider(self) -> FusionProvider:
        provider = next((p for p in self.aggregator.providers if isinstance(p, FusionProvider)), None)
        if provider is None:
            raise ProviderError(
                "1inch-fusion",
                ProviderErrorKind.UNSUPPORTED,
                "Order tracking requires the 1inch Fusion provider with an API key",
            )
        return provider

    async def get_order_status(self, order_id: str, chain_id: int = 1) -> OrderStatusResponse:
        """Poll a Fusion order.

        Raises:
            ProviderError: if Fusion is not configured or the lookup fails
        """
        if not order_id or not order_id.strip():
            raise InvalidRequestError("Order id is required")
        status = await self._fusion_provider().get_order_status(order_id.strip(), chain_id)
        return OrderStatusResponse(
            success=True,
            order_id=status.order_id,
            status=status.status,
            tx_hash=status.tx_hash,
            fills=status.fills,
            error=status.error,
        )

    async def get_gas(self, chain_id: int) -> GasPriceResponse:
        """Gas presets for a chain; uses fallback presets without an oracle."""
        if self.gas_oracle is None:
            analysis = fallback_analysis(chain_id)
        else:
            analysis = await self.gas_oracle.analyze(chain_id)
        return GasPriceResponse(success=True, **analysis.to_dict())

    def stats(self) -> dict:
        limiter = self.aggregator.rate_limiter
        return {
            "providers": [p.name for p in self.aggregator.providers],
            "cache": self.aggregator.cache.stats(),
            "rate_limit": limiter.stats() if limiter else None,
            "outcomes": self.recorder.summary(),
            "maintenance_running": self.maintenance.running,
        }
