"""Heuristic route scoring.

Confidence starts at 1.0 and loses weighted penalties for price impact,
completion time and risk. Small bonuses come from protocol diversity and
the recorded success rate of the same path. Every component is a plain
function of the proposal, so the same proposal always scores the same.

    confidence = clamp(
        1
        - w_price * m_price * (1 - exp(-impact / impact_scale))
        - w_time  * m_time  * t / (t + time_scale)
        - w_risk  * m_risk  * risk
        + min(protocol_cap, protocol_bonus * recognized_protocols)
        + history_weight * 2 * (success_rate - 0.5),
        0, 1)

    risk = min(1, risk_per_note * len(risk_notes) + risk_per_impact * impact)

m_* are the preference multipliers in PREFERENCE_MULTIPLIERS.
"""

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Union

from crossswap.routing.base import RouteProposal, ScoredRoute, UserPreference
from crossswap.scoring.outcomes import OutcomeRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """Tunable scoring policy."""

    price_impact: float = 0.4
    time: float = 0.2
    risk: float = 0.3
    price_impact_scale: float = 0.02  # impact at which ~63% of the penalty applies
    time_scale_seconds: float = 600.0  # time at which half the penalty applies
    risk_per_note: float = 0.15
    risk_per_price_impact: float = 5.0
    protocol_bonus: float = 0.01
    protocol_bonus_cap: float = 0.05
    history_weight: float = 0.1
    history_min_samples: int = 3
    baseline_gas_units: int = 250000


@dataclass(frozen=True)
class PreferenceMultipliers:
    price_impact: float = 1.0
    time: float = 1.0
    risk: float = 1.0


PREFERENCE_MULTIPLIERS: dict[UserPreference, PreferenceMultipliers] = {
    UserPreference.BALANCED: PreferenceMultipliers(),
    UserPreference.SPEED: PreferenceMultipliers(time=2.0, risk=0.5),
    UserPreference.COST: PreferenceMultipliers(price_impact=2.0, time=0.5),
    UserPreference.SECURITY: PreferenceMultipliers(time=0.5, risk=2.0),
}

# Venue families that count toward the diversity bonus
RECOGNIZED_PROTOCOLS = (
    "1inch",
    "uniswap",
    "sushi",
    "curve",
    "balancer",
    "pancake",
    "quickswap",
    "dodo",
    "kyber",
    "maverick",
    "camelot",
    "velodrome",
    "aerodrome",
    "trader joe",
)


def is_recognized_protocol(name: str) -> bool:
    normalized = name.strip().lower().replace("_", " ")
    return any(normalized.startswith(family) for family in RECOGNIZED_PROTOCOLS)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def _finite_non_negative(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def resolve_preference(preference: Union[UserPreference, str, None]) -> UserPreference:
    """Map a preference name to the enum; unknown names fall back to balanced."""
    if isinstance(preference, UserPreference):
        return preference
    try:
        return UserPreference(str(preference or "balanced").strip().lower())
    except ValueError:
        logger.debug(f"Unknown preference '{preference}', using balanced")
        return UserPreference.BALANCED


@dataclass
class ScoringContext:
    """Inputs shared by every proposal of one batch."""

    preference: UserPreference = UserPreference.BALANCED
    batch_min_output: Optional[int] = None
    recorder: Optional[OutcomeRecorder] = field(default=None, repr=False)


class RouteScorer:
    """Scores and ranks route proposals."""

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        recorder: Optional[OutcomeRecorder] = None,
    ):
        self.weights = weights or ScoringWeights()
        self.recorder = recorder

    @staticmethod
    def validation_error(proposal: RouteProposal) -> Optional[str]:
        """Reason a proposal is structurally invalid, or None if it is valid."""
        if not proposal.id or not str(proposal.id).strip():
            return "empty route id"
        try:
            output = int(proposal.estimated_output)
        except (TypeError, ValueError):
            return "unparseable estimated output"
        if output <= 0:
            return "non-positive estimated output"
        if not proposal.steps:
            return "empty step list"
        return None

    @classmethod
    def is_valid(cls, proposal: RouteProposal) -> bool:
        return cls.validation_error(proposal) is None

    def risk_score(self, proposal: RouteProposal) -> float:
        """Risk in [0, 1] from risk notes and price impact."""
        impact = _finite_non_negative(proposal.price_impact)
        notes = len(proposal.risks or [])
        return _clamp(self.weights.risk_per_note * notes + self.weights.risk_per_price_impact * impact)

    def price_impact_penalty(self, proposal: RouteProposal) -> float:
        impact = _finite_non_negative(proposal.price_impact)
        scale = self.weights.price_impact_scale
        if scale <= 0:
            return 1.0 if impact > 0 else 0.0
        return 1.0 - math.exp(-impact / scale)

    def time_penalty(self, seconds) -> float:
        t = _finite_non_negative(seconds)
        scale = self.weights.time_scale_seconds
        if t + scale <= 0:
            return 0.0
        return t / (t + scale)

    def protocol_bonus(self, proposal: RouteProposal) -> float:
        recognized = {p.strip().lower() for p in proposal.protocols if is_recognized_protocol(p)}
        return min(self.weights.protocol_bonus_cap, self.weights.protocol_bonus * len(recognized))

    def history_adjustment(self, proposal: RouteProposal, recorder: Optional[OutcomeRecorder]) -> float:
        if recorder is None:
            return 0.0
        stats = recorder.path_stats(proposal.path_signature)
        if stats is None or stats.count < self.weights.history_min_samples:
            return 0.0
        return (_clamp(stats.success_rate) - 0.5) * 2 * self.weights.history_weight

    def confidence(
        self,
        proposal: RouteProposal,
        preference: UserPreference = UserPreference.BALANCED,
        recorder: Optional[OutcomeRecorder] = None,
    ) -> float:
        m = PREFERENCE_MULTIPLIERS[preference]
        w = self.weights
        value = (
            1.0
            - w.price_impact * m.price_impact * self.price_impact_penalty(proposal)
            - w.time * m.time * self.time_penalty(proposal.estimated_time)
            - w.risk * m.risk * self.risk_score(proposal)
            + self.protocol_bonus(proposal)
            + self.history_adjustment(proposal, recorder)
        )
        return _clamp(value)

    def gas_optimization(self, proposal: RouteProposal) -> float:
        """Fractional gas saving against the baseline swap; 0.0 when unknown or worse."""
        gas = _finite_non_negative(proposal.estimated_gas)
        baseline = self.weights.baseline_gas_units
        if gas <= 0 or baseline <= 0:
            return 0.0
        return max(0.0, (baseline - gas) / baseline)

    def execution_time(self, proposal: RouteProposal, recorder: Optional[OutcomeRecorder]) -> int:
        estimate = int(_finite_non_negative(proposal.estimated_time))
        if recorder is None:
            return estimate
        stats = recorder.path_stats(proposal.path_signature)
        if stats is None or stats.count < self.weights.history_min_samples:
            return estimate
        average = stats.average_duration
        if not math.isfinite(average) or average < 0:
            return estimate
        return int(round((estimate + average) / 2))

    @staticmethod
    def savings(output: int, batch_min_output: Optional[int]) -> float:
        """Relative improvement over the worst output of the batch."""
        if not batch_min_output or batch_min_output <= 0:
            return 0.0
        gain = (Decimal(output) - Decimal(batch_min_output)) / Decimal(batch_min_output)
        return max(0.0, float(gain))

    def score(self, proposal: RouteProposal, context: Optional[ScoringContext] = None) -> Optional[ScoredRoute]:
        """Score one proposal, or return None if it fails validation.

        Scores are also attached to the proposal itself.
        """
        reason = self.validation_error(proposal)
        if reason:
            logger.info(f"Excluding route '{proposal.id}' from {proposal.provider}: {reason}")
            return None

        context = context or ScoringContext()
        recorder = context.recorder or self.recorder
        output = int(proposal.estimated_output)

        scored = ScoredRoute(
            proposal=proposal,
            confidence=self.confidence(proposal, context.preference, recorder),
            risk_score=self.risk_score(proposal),
            savings_estimate=self.savings(output, context.batch_min_output),
            execution_time=self.execution_time(proposal, recorder),
            gas_optimization=self.gas_optimization(proposal),
        )

        proposal.confidence = scored.confidence
        proposal.risk_score = scored.risk_score
        proposal.savings_estimate = scored.savings_estimate
        proposal.gas_optimization = scored.gas_optimization
        return scored

    def score_batch(
        self,
        proposals: Iterable[RouteProposal],
        preference: Union[UserPreference, str, None] = UserPreference.BALANCED,
    ) -> list[ScoredRoute]:
        """Validate and score a batch; savings are relative to its worst route."""
        valid = []
        for proposal in proposals:
            reason = self.validation_error(proposal)
            if reason:
                logger.info(f"Excluding route '{proposal.id}' from {proposal.provider}: {reason}")
                continue
            valid.append(proposal)
        if not valid:
            return []

        context = ScoringContext(
            preference=resolve_preference(preference),
            batch_min_output=min(int(p.estimated_output) for p in valid),
            recorder=self.recorder,
        )
        return [scored for scored in (self.score(p, context) for p in valid) if scored]

    @staticmethod
    def rank(routes: Iterable[ScoredRoute]) -> list[ScoredRoute]:
        """Sort by confidence, then higher output, then lower gas.

        The id is the final key so the order never depends on arrival order.
        """
        return sorted(
            routes,
            key=lambda r: (-r.confidence, -r.estimated_output, r.estimated_gas, r.id),
        )
