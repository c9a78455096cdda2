"""Routing module for cross-chain route aggregation.

Providers:
- 1inch Fusion: RFQ quotes filled by resolvers through a Dutch auction
- 1inch Aggregation: on-chain multi-hop routes across DEX venues
- Simulated: price-table providers used without an API key or in dry run
"""

from crossswap.routing.base import (
    ProviderKind,
    QuoteOptions,
    RouteProposal,
    RouteProvider,
    RouteStep,
    ScoredRoute,
    UserPreference,
)
from crossswap.routing.aggregator import AggregationResult, ProviderStatus, RouteAggregator
from crossswap.routing.dry_run import SimulatedDexAggregator, SimulatedFusionRouter
from crossswap.routing.factory import create_aggregator, create_gas_oracle, create_providers
from crossswap.routing.fusion import FusionProvider
from crossswap.routing.gas import GasOracle
from crossswap.routing.oneinch import AggregationProvider

__all__ = [
    # Base classes
    "ProviderKind",
    "QuoteOptions",
    "RouteProposal",
    "RouteProvider",
    "RouteStep",
    "ScoredRoute",
    "UserPreference",
    "RouteAggregator",
    "AggregationResult",
    "ProviderStatus",
    # Providers
    "FusionProvider",
    "AggregationProvider",
    "GasOracle",
    "SimulatedFusionRouter",
    "SimulatedDexAggregator",
    # Factory functions
    "create_aggregator",
    "create_gas_oracle",
    "create_providers",
]
