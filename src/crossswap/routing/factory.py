"""Factory for creating route providers and the aggregator.

Creates real providers when an API key is available, otherwise
falls back to simulated providers.
"""

import logging
from typing import Optional

import httpx

from crossswap.config import Settings, get_settings
from crossswap.routing.aggregator import RouteAggregator
from crossswap.routing.base import RouteProvider
from crossswap.routing.dry_run import SimulatedDexAggregator, SimulatedFusionRouter
from crossswap.routing.fusion import FusionProvider
from crossswap.routing.gas import GasOracle
from crossswap.routing.oneinch import AggregationProvider
from crossswap.scoring.outcomes import OutcomeRecorder
from crossswap.scoring.scorer import RouteScorer
from crossswap.tokens import TokenRegistry
from crossswap.utils.cache import QuoteCache
from crossswap.utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def _use_real(settings: Settings) -> bool:
    return bool(settings.oneinch_api_key) and not settings.dry_run


def create_gas_oracle(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[GasOracle]:
    """Create the gas oracle, or None in simulated mode."""
    settings = settings or get_settings()
    if not _use_real(settings):
        return None
    return GasOracle(
        api_key=settings.oneinch_api_key,
        base_url=settings.gas_api_url,
        timeout=settings.gas_oracle_timeout_seconds,
        transport=transport,
    )


def create_fusion_provider(
    settings: Optional[Settings] = None,
    registry: Optional[TokenRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RouteProvider:
    """Create the 1inch Fusion provider."""
    settings = settings or get_settings()
    if _use_real(settings):
        return FusionProvider(
            api_key=settings.oneinch_api_key,
            base_url=settings.fusion_api_url,
            timeout=settings.provider_timeout_seconds,
            transport=transport,
            registry=registry,
        )

    logger.info("No 1inch API key or dry run enabled, using simulated Fusion router")
    return SimulatedFusionRouter()


def create_aggregation_provider(
    settings: Optional[Settings] = None,
    registry: Optional[TokenRegistry] = None,
    gas_oracle: Optional[GasOracle] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RouteProvider:
    """Create the 1inch aggregation provider."""
    settings = settings or get_settings()
    if _use_real(settings):
        return AggregationProvider(
            api_key=settings.oneinch_api_key,
            base_url=settings.aggregation_api_url,
            timeout=settings.provider_timeout_seconds,
            transport=transport,
            registry=registry,
            gas_oracle=gas_oracle,
            default_gas_preset=settings.default_gas_preset,
        )

    logger.info("No 1inch API key or dry run enabled, using simulated DEX aggregator")
    return SimulatedDexAggregator()


def create_providers(
    settings: Optional[Settings] = None,
    registry: Optional[TokenRegistry] = None,
    gas_oracle: Optional[GasOracle] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[RouteProvider]:
    """Create the providers listed in `enabled_providers`."""
    settings = settings or get_settings()
    providers: list[RouteProvider] = []

    for kind in settings.provider_kinds:
        if kind == "fusion":
            providers.append(create_fusion_provider(settings, registry, transport))
        elif kind == "aggregation":
            providers.append(create_aggregation_provider(settings, registry, gas_oracle, transport))
        else:
            logger.warning(f"Unknown provider '{kind}' in enabled_providers, ignoring")

    logger.info(f"Created {len(providers)} provider(s): {', '.join(p.name for p in providers)}")
    return providers


def create_aggregator(
    settings: Optional[Settings] = None,
    registry: Optional[TokenRegistry] = None,
    recorder: Optional[OutcomeRecorder] = None,
    providers: Optional[list[RouteProvider]] = None,
    gas_oracle: Optional[GasOracle] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RouteAggregator:
    """Create an aggregator with its own cache and rate limiter."""
    settings = settings or get_settings()
    if providers is None:
        providers = create_providers(settings, registry, gas_oracle, transport)

    ttl_ms = settings.quote_cache_ttl_seconds * 1000
    return RouteAggregator(
        providers=providers,
        scorer=RouteScorer(weights=settings.scoring_weights(), recorder=recorder),
        cache=QuoteCache(max_entries=settings.cache_max_entries, default_ttl_ms=ttl_ms),
        rate_limiter=RateLimiter(
            quota=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        cache_ttl_ms=ttl_ms,
        dedupe_tolerance=settings.dedupe_tolerance,
    )
