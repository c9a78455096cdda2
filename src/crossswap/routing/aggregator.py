"""Route aggregation across providers."""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from crossswap.errors import (
    AllProvidersUnavailableError,
    InvalidRequestError,
    MalformedRouteError,
    ProviderError,
    ProviderErrorKind,
    RateLimitExceededError,
)
from crossswap.routing.base import (
    QuoteOptions,
    RouteProposal,
    RouteProvider,
    ScoredRoute,
    UserPreference,
)
from crossswap.scoring.scorer import RouteScorer, resolve_preference
from crossswap.tokens import Amount, Token
from crossswap.utils.cache import QuoteCache, request_fingerprint
from crossswap.utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class ProviderStatus:
    """What one provider contributed to a request."""

    provider: str
    status: str  # ok, failed, skipped
    routes: int = 0
    reason: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "status": self.status,
            "routes": self.routes,
            "reason": self.reason,
            "error_kind": self.error_kind,
        }


@dataclass
class AggregationResult:
    routes: list[ScoredRoute]
    provider_statuses: list[ProviderStatus] = field(default_factory=list)
    cached: bool = False


def deduplicate(proposals: list[RouteProposal], tolerance: float = 0.001) -> list[RouteProposal]:
    """Drop near-identical routes.

    Two proposals are duplicates when their protocol sequences match and
    their outputs differ by less than `tolerance` relative to the larger.
    The higher output is kept.
    """
    tol = Decimal(str(tolerance))
    kept: list[RouteProposal] = []
    ordered = sorted(proposals, key=lambda p: (-int(p.estimated_output), p.id))
    for proposal in ordered:
        output = int(proposal.estimated_output)
        duplicate_of = next(
            (
                k
                for k in kept
                if k.protocols == proposal.protocols
                and Decimal(abs(int(k.estimated_output) - output)) < tol * max(int(k.estimated_output), output)
            ),
            None,
        )
        if duplicate_of is not None:
            logger.debug(f"Dropping route {proposal.id}: duplicate of {duplicate_of.id}")
            continue
        kept.append(proposal)
    return kept


class RouteAggregator:
    """Aggregates quotes from multiple providers into one ranked route list.

    Cache and rate limiter are passed in so each service instance (and
    each test) owns its own state.
    """

    def __init__(
        self,
        providers: Optional[list[RouteProvider]] = None,
        scorer: Optional[RouteScorer] = None,
        cache: Optional[QuoteCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        cache_ttl_ms: float = 30000,
        dedupe_tolerance: float = 0.001,
    ):
        self.providers: list[RouteProvider] = providers or []
        self.scorer = scorer or RouteScorer()
        self.cache = cache if cache is not None else QuoteCache(default_ttl_ms=cache_ttl_ms)
        self.rate_limiter = rate_limiter
        self.cache_ttl_ms = cache_ttl_ms
        self.dedupe_tolerance = dedupe_tolerance

    def add_provider(self, provider: RouteProvider) -> None:
        """Add a routing provider."""
        self.providers.append(provider)

    def get_provider(self, name: str) -> Optional[RouteProvider]:
        return next((p for p in self.providers if p.name == name), None)

    def check_rate_limit(self, client_id) -> None:
        """Record a request for the client.

        Raises:
            RateLimitExceededError: if the client is over quota
        """
        if self.rate_limiter is None:
            return
        decision = self.rate_limiter.check_and_record(client_id)
        if not decision.allowed:
            raise RateLimitExceededError(
                retry_after_seconds=decision.retry_after_seconds or 1,
                limit=self.rate_limiter.quota,
                window_seconds=int(self.rate_limiter.window_seconds),
            )

    def _select_providers(self, preferred_provider: Optional[str]) -> list[RouteProvider]:
        enabled = [p for p in self.providers if p.enabled]
        if not preferred_provider:
            return enabled
        selected = [p for p in enabled if p.name == preferred_provider]
        if not selected:
            names = ", ".join(p.name for p in enabled) or "none"
            raise InvalidRequestError(f"Unknown provider '{preferred_provider}'. Available: {names}")
        return selected

    async def _fetch_one(
        self,
        provider: RouteProvider,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str],
        options: QuoteOptions,
    ) -> RouteProposal:
        try:
            return await asyncio.wait_for(
                provider.fetch_quote(from_token, to_token, amount, wallet_address, options),
                timeout=provider.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                provider.name,
                ProviderErrorKind.TIMEOUT,
                f"{provider.name} did not respond within {provider.timeout:.0f}s",
            )

    def _check_proposal(self, provider: RouteProvider, proposal) -> RouteProposal:
        if not isinstance(proposal, RouteProposal):
            raise MalformedRouteError(provider.name, "provider returned no route proposal")
        reason = self.scorer.validation_error(proposal)
        if reason:
            raise MalformedRouteError(provider.name, reason)
        return proposal

    async def aggregate(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        preferred_provider: Optional[str] = None,
        preference: Union[UserPreference, str, None] = UserPreference.BALANCED,
        options: Optional[QuoteOptions] = None,
        client_id=None,
    ) -> AggregationResult:
        """Get ranked routes with per-provider status.

        Raises:
            InvalidRequestError: bad amount, identical tokens or unknown provider
            RateLimitExceededError: if the client is over quota
            AllProvidersUnavailableError: if every queried provider failed
        """
        self.check_rate_limit(client_id)

        if not amount.is_positive:
            raise InvalidRequestError("Amount must be greater than zero")
        if from_token.token_id == to_token.token_id:
            raise InvalidRequestError("Source and destination tokens must differ")

        options = options or QuoteOptions()
        preference = resolve_preference(preference)
        providers = self._select_providers(preferred_provider)

        fingerprint = request_fingerprint(
            from_token.token_id,
            to_token.token_id,
            amount.base_units,
            options.chain_id if options.chain_id is not None else from_token.chain_id,
            {
                "preference": preference.value,
                "provider": preferred_provider or "",
                "wallet": (wallet_address or "").lower(),
                "gas": str(options.gas_price or ""),
            },
        )
        cached = self.cache.get(fingerprint)
        if cached is not None:
            logger.debug(f"Cache hit for {from_token.symbol}->{to_token.symbol} {amount.value}")
            return AggregationResult(
                routes=list(cached.routes),
                provider_statuses=list(cached.provider_statuses),
                cached=True,
            )

        logger.info(
            f"Aggregating routes: {amount.value} {from_token.symbol} -> {to_token.symbol} "
            f"across {len(providers)} provider(s)"
        )

        eligible = [p for p in providers if p.supports_pair(from_token, to_token)]
        statuses = [
            ProviderStatus(p.name, "skipped", reason="pair not supported")
            for p in providers
            if p not in eligible
        ]

        results = await asyncio.gather(
            *(self._fetch_one(p, from_token, to_token, amount, wallet_address, options) for p in eligible),
            return_exceptions=True,
        )

        proposals: list[RouteProposal] = []
        failures: dict[str, str] = {}
        for provider, result in zip(eligible, results):
            if isinstance(result, ProviderError):
                logger.warning(f"{provider.name} quote failed: {result}")
                failures[provider.name] = result.reason
                statuses.append(
                    ProviderStatus(
                        provider.name, "failed", reason=result.reason, error_kind=result.kind.value
                    )
                )
                continue
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.error(f"{provider.name} quote failed: {type(result).__name__}: {result}")
                failures[provider.name] = "Unexpected provider failure"
                statuses.append(ProviderStatus(provider.name, "failed", reason="Unexpected provider failure"))
                continue

            try:
                proposals.append(self._check_proposal(provider, result))
            except MalformedRouteError as e:
                logger.warning(f"Malformed route from {provider.name}: {e.reason}")
                statuses.append(ProviderStatus(provider.name, "failed", reason=f"malformed route: {e.reason}"))
                continue
            statuses.append(ProviderStatus(provider.name, "ok", routes=1))

        if len(failures) == len(eligible):
            logger.error(
                f"No quotes available for {from_token.symbol}->{to_token.symbol}. "
                f"Errors: {'; '.join(f'{k}: {v}' for k, v in failures.items()) or 'no eligible providers'}"
            )
            raise AllProvidersUnavailableError(failures or {p.name: "pair not supported" for p in providers})

        unique = deduplicate(proposals, self.dedupe_tolerance)
        routes = self.scorer.rank(self.scorer.score_batch(unique, preference))
        statuses.sort(key=lambda s: s.provider)

        result = AggregationResult(routes=routes, provider_statuses=statuses)
        self.cache.set(fingerprint, result, self.cache_ttl_ms)

        if routes:
            best = routes[0]
            logger.info(
                f"Got {len(routes)} route(s) for {from_token.symbol}->{to_token.symbol}. "
                f"Best: {best.provider} (confidence {best.confidence:.2f})"
            )
        else:
            logger.warning(f"Providers answered but no valid routes for {from_token.symbol}->{to_token.symbol}")

        return result

    async def get_routes(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        preferred_provider: Optional[str] = None,
        preference: Union[UserPreference, str, None] = UserPreference.BALANCED,
        options: Optional[QuoteOptions] = None,
        client_id=None,
    ) -> list[ScoredRoute]:
        """Get routes ranked best first. An empty list means no valid route."""
        result = await self.aggregate(
            from_token,
            to_token,
            amount,
            wallet_address=wallet_address,
            preferred_provider=preferred_provider,
            preference=preference,
            options=options,
            client_id=client_id,
        )
        return result.routes
