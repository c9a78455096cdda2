"""Route scoring, parameter prediction, insights and outcome feedback."""

from crossswap.scoring.insights import InsightGenerator
from crossswap.scoring.outcomes import OutcomeRecorder, PathStats, TransactionOutcome
from crossswap.scoring.predictor import ParameterPredictor, Prediction
from crossswap.scoring.scorer import (
    PREFERENCE_MULTIPLIERS,
    RouteScorer,
    ScoringContext,
    ScoringWeights,
)

__all__ = [
    "InsightGenerator",
    "OutcomeRecorder",
    "PathStats",
    "TransactionOutcome",
    "ParameterPredictor",
    "Prediction",
    "PREFERENCE_MULTIPLIERS",
    "RouteScorer",
    "ScoringContext",
    "ScoringWeights",
]
