"""1inch aggregation (swap API) integration.

Routes are computed on-chain across many venues; the response carries the
protocol split per hop and a gas estimate.
API docs: https://portal.1inch.dev/documentation/apis/swap/introduction
"""

import logging
import uuid
from typing import Optional

import httpx
from pydantic import ValidationError

from crossswap.errors import ProviderError, ProviderErrorKind
from crossswap.routing.base import (
    HttpRouteProvider,
    ProviderKind,
    QuoteOptions,
    RouteProposal,
    RouteStep,
)
from crossswap.routing.gas import GasOracle, resolve_gas_price
from crossswap.routing.schemas import AggregationQuotePayload, ProtocolPart, parse_payload
from crossswap.tokens import Amount, Token, TokenRegistry

logger = logging.getLogger(__name__)

# 1inch API endpoints
ONEINCH_API_V6 = "https://api.1inch.dev/swap/v6.0"

# Multi-hop routes touch more contracts
MULTI_HOP_RISK_THRESHOLD = 3

UNREPORTED_IMPACT_RISK = "Price impact not reported by the aggregator"


def _main_venue(hop: list[ProtocolPart]) -> ProtocolPart:
    """Venue carrying the largest share of a hop."""
    return max(hop, key=lambda p: p.part)


class AggregationProvider(HttpRouteProvider):
    """1inch DEX aggregator provider.

    Supports swaps on Ethereum and other EVM chains using 1inch's
    aggregation protocol.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = ONEINCH_API_V6,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[TokenRegistry] = None,
        gas_oracle: Optional[GasOracle] = None,
        default_gas_preset: str = "fast",
    ):
        """Initialize aggregation provider.

        Args:
            api_key: 1inch API key (required for production)
            base_url: Swap API root
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a mock)
            registry: Token registry for wrapped-asset lookups
            gas_oracle: Resolves named gas presets
            default_gas_preset: Preset used when the caller gives none
        """
        super().__init__(api_key=api_key, timeout=timeout, transport=transport, registry=registry)
        self.base_url = base_url.rstrip("/")
        self.gas_oracle = gas_oracle
        self.default_gas_preset = default_gas_preset

    @property
    def name(self) -> str:
        return "1inch-aggregation"

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.AGGREGATION

    async def fetch_quote(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        options: Optional[QuoteOptions] = None,
    ) -> RouteProposal:
        """Get swap quote from 1inch."""
        options = options or QuoteOptions()
        chain_id = self._quote_chain_id(from_token, options)

        try:
            gas_price = await resolve_gas_price(
                options.gas_price, chain_id, self.gas_oracle, self.default_gas_preset
            )
        except ValueError as e:
            raise ProviderError(self.name, ProviderErrorKind.UNSUPPORTED, str(e))

        params = {
            "src": self._address(from_token),
            "dst": self._address(to_token),
            "amount": str(amount.base_units),
            "gasPrice": str(gas_price),
            "includeTokensInfo": "true",
            "includeProtocols": "true",
            "includeGas": "true",
        }

        logger.debug(
            f"1inch quote request: {amount.value} {from_token.symbol} -> {to_token.symbol} "
            f"on chain {chain_id}, gas price {gas_price}"
        )
        data = await self._request_json("GET", f"{self.base_url}/{chain_id}/quote", params=params)
        try:
            payload: AggregationQuotePayload = parse_payload("aggregation", data)
        except ValidationError as e:
            raise self._invalid_payload(e)

        return self._to_proposal(payload, from_token, to_token, amount, gas_price)

    def _build_steps(
        self,
        payload: AggregationQuotePayload,
        from_token: Token,
        to_token: Token,
        amount: Amount,
    ) -> list[RouteStep]:
        estimated_output = int(payload.dst_amount)
        hops = [hop for hop in (payload.protocols[0] if payload.protocols else []) if hop]
        if not hops:
            return [
                RouteStep(
                    protocol="1inch Aggregation",
                    from_token=from_token.symbol,
                    to_token=to_token.symbol,
                    amount_in=amount.base_units,
                    estimated_out=estimated_output,
                )
            ]

        steps = []
        last = len(hops) - 1
        for i, hop in enumerate(hops):
            venue = _main_venue(hop)
            steps.append(
                RouteStep(
                    protocol=venue.name,
                    from_token=from_token.symbol if i == 0 else venue.from_token_address,
                    to_token=to_token.symbol if i == last else venue.to_token_address,
                    amount_in=amount.base_units if i == 0 else 0,
                    estimated_out=estimated_output if i == last else 0,
                )
            )
        return steps

    def _to_proposal(
        self,
        payload: AggregationQuotePayload,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        gas_price: int,
    ) -> RouteProposal:
        steps = self._build_steps(payload, from_token, to_token, amount)

        risks = []
        if len(steps) >= MULTI_HOP_RISK_THRESHOLD:
            risks.append(f"Multi-hop route through {len(steps)} pools")
        if len(payload.protocols) > 1:
            risks.append("Split across several routes, more contract interactions")
        if payload.price_impact_percent is None:
            risks.append(UNREPORTED_IMPACT_RISK)
        elif payload.price_impact_percent >= 1.0:
            risks.append(f"High price impact ({payload.price_impact_percent:.2f}%)")

        advantages = ["On-chain execution, no counterparty wait"]
        venues = {step.protocol for step in steps}
        if len(venues) > 1:
            advantages.append(f"Liquidity sourced from {len(venues)} venues")

        return RouteProposal(
            id=f"aggregation-{uuid.uuid4().hex[:16]}",
            provider=self.name,
            from_token=from_token,
            to_token=to_token,
            amount=amount,
            steps=steps,
            estimated_output=int(payload.dst_amount),
            estimated_gas=payload.gas,
            estimated_time=30,  # ~2 blocks on Ethereum
            price_impact=(payload.price_impact_percent or 0.0) / 100,
            risks=risks,
            advantages=advantages,
            gas_price=gas_price,
        )
