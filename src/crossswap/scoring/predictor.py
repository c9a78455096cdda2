"""Swap parameter prediction from the ranked routes and recorded outcomes."""

import logging
import statistics
from dataclasses import dataclass, field
from typing import Optional

from crossswap.routing.base import ScoredRoute
from crossswap.scoring.outcomes import OutcomeRecorder
from crossswap.tokens import Amount, Token

logger = logging.getLogger(__name__)

DEFAULT_SLIPPAGE = 0.005
SAFETY_MARGIN = 0.002
MIN_SLIPPAGE = 0.001
MAX_SLIPPAGE = 0.05

BASE_SUCCESS_PROBABILITY = 0.85
ROUTE_COUNT_BONUS = 0.03
DEFAULT_ESTIMATED_TIME = 300


@dataclass
class Prediction:
    """Recommended parameters for one swap request."""

    optimal_slippage: float  # fraction
    predicted_gas: int  # gas units
    success_probability: float
    estimated_time: int  # seconds
    recommended_route: Optional[dict] = None
    route_ordering: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "optimal_slippage": round(self.optimal_slippage, 6),
            "predicted_gas": self.predicted_gas,
            "success_probability": round(self.success_probability, 6),
            "estimated_time": self.estimated_time,
            "recommended_route": self.recommended_route,
            "route_ordering": list(self.route_ordering),
        }


class ParameterPredictor:
    """Estimates slippage, gas, success probability and timing.

    Consumes the aggregator's ranked list rather than re-ranking, so the
    recommended route is always the aggregator's top route.
    """

    def __init__(self, recorder: Optional[OutcomeRecorder] = None, baseline_gas_units: int = 250000):
        self.recorder = recorder
        self.baseline_gas_units = baseline_gas_units

    def optimal_slippage(self, from_token: Token, to_token: Token, routes: list[ScoredRoute]) -> float:
        history = self.recorder.slippage_history(from_token, to_token) if self.recorder else []
        if len(history) >= 2:
            volatility = statistics.fmean(history) + statistics.pstdev(history)
        elif history:
            volatility = max(history[0], DEFAULT_SLIPPAGE)
        else:
            volatility = DEFAULT_SLIPPAGE

        impact = routes[0].proposal.price_impact if routes else 0.0
        impact = impact if impact and impact > 0 else 0.0
        return min(MAX_SLIPPAGE, max(MIN_SLIPPAGE, volatility + SAFETY_MARGIN + impact))

    def predicted_gas(self, routes: list[ScoredRoute]) -> int:
        if not routes:
            return self.baseline_gas_units
        top = routes[0]
        if self.recorder is not None:
            stats = self.recorder.path_stats(top.proposal.path_signature)
            if stats is not None and stats.average_gas > 0:
                return stats.average_gas
        if top.estimated_gas > 0:
            return top.estimated_gas
        return self.baseline_gas_units

    def success_probability(self, routes: list[ScoredRoute]) -> float:
        if not routes:
            return 0.0
        top = routes[0]
        impact = max(top.proposal.price_impact or 0.0, 0.0)
        probability = (
            BASE_SUCCESS_PROBABILITY
            + ROUTE_COUNT_BONUS * min(len(routes) - 1, 3)
            - 2 * impact
        )

        if self.recorder is not None:
            stats = self.recorder.path_stats(top.proposal.path_signature)
            if stats is not None and stats.count > 0:
                probability = (probability + stats.success_rate) / 2

        return max(0.0, min(1.0, probability))

    def predict(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        routes: list[ScoredRoute],
    ) -> Prediction:
        """Predict swap parameters for a pair and amount.

        Args:
            from_token: Source token
            to_token: Destination token
            amount: Input amount
            routes: Ranked routes from the aggregator (best first)
        """
        recommended = None
        estimated_time = DEFAULT_ESTIMATED_TIME
        if routes:
            top = routes[0]
            recommended = {
                "route_id": top.id,
                "provider": top.provider,
                "protocols": list(top.proposal.protocols),
            }
            estimated_time = max(top.execution_time, 1)

        prediction = Prediction(
            optimal_slippage=self.optimal_slippage(from_token, to_token, routes),
            predicted_gas=self.predicted_gas(routes),
            success_probability=self.success_probability(routes),
            estimated_time=estimated_time,
            recommended_route=recommended,
            route_ordering=[r.id for r in routes],
        )
        logger.debug(
            f"Prediction {from_token.symbol}->{to_token.symbol} {amount.value}: "
            f"slippage={prediction.optimal_slippage:.4f}, p={prediction.success_probability:.2f}"
        )
        return prediction
