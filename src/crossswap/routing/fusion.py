"""1inch Fusion (RFQ) integration.

Quotes come from the Fusion quoter; a resolver fills the order through a
Dutch auction, so the maker pays no gas and is protected from MEV.
Orders are submitted through the relayer and polled through the orders API.
API docs: https://portal.1inch.dev/documentation/apis/swap/fusion-plus/introduction
"""

import logging
import uuid
from typing import Optional

import httpx
from pydantic import ValidationError

from crossswap.routing.base import (
    HttpRouteProvider,
    ProviderKind,
    QuoteOptions,
    RouteProposal,
    RouteStep,
)
from crossswap.routing.schemas import (
    FusionOrderPayload,
    FusionOrderStatusPayload,
    FusionQuotePayload,
    parse_payload,
)
from crossswap.tokens import ZERO_ADDRESS, Amount, Token, TokenRegistry

logger = logging.getLogger(__name__)

FUSION_API = "https://api.1inch.dev/fusion"

# Auctions longer than this are flagged as a risk
LONG_AUCTION_SECONDS = 300


class FusionProvider(HttpRouteProvider):
    """1inch Fusion RFQ provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = FUSION_API,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[TokenRegistry] = None,
    ):
        """Initialize Fusion provider.

        Args:
            api_key: 1inch API key (required for production)
            base_url: Fusion API root
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a mock)
            registry: Token registry for wrapped-asset lookups
        """
        super().__init__(api_key=api_key, timeout=timeout, transport=transport, registry=registry)
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "1inch-fusion"

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.RFQ

    async def fetch_quote(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        options: Optional[QuoteOptions] = None,
    ) -> RouteProposal:
        """Get a Fusion quote."""
        chain_id = self._quote_chain_id(from_token, options)
        params = {
            "srcTokenAddress": self._address(from_token),
            "dstTokenAddress": self._address(to_token),
            "amount": str(amount.base_units),
            "walletAddress": wallet_address or ZERO_ADDRESS,
            "enableEstimate": "true",
        }

        data = await self._request_json(
            "GET",
            f"{self.base_url}/quoter/v2.0/{chain_id}/quote/receive",
            params=params,
        )
        try:
            payload: FusionQuotePayload = parse_payload("fusion", data)
        except ValidationError as e:
            raise self._invalid_payload(e)

        return self._to_proposal(payload, from_token, to_token, amount)

    def _to_proposal(
        self,
        payload: FusionQuotePayload,
        from_token: Token,
        to_token: Token,
        amount: Amount,
    ) -> RouteProposal:
        estimated_output = int(payload.dst_amount)
        duration = payload.auction_duration

        risks = ["Fill depends on resolver participation in the Dutch auction"]
        if duration > LONG_AUCTION_SECONDS:
            risks.append(f"Long auction duration ({duration}s)")
        if payload.price_impact_percent >= 1.0:
            risks.append(f"High price impact ({payload.price_impact_percent:.2f}%)")

        step = RouteStep(
            protocol="1inch Fusion",
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount_in=amount.base_units,
            estimated_out=estimated_output,
            fee=payload.resolver_cost,
        )

        return RouteProposal(
            id=f"fusion-{payload.quote_id or uuid.uuid4().hex[:16]}",
            provider=self.name,
            from_token=from_token,
            to_token=to_token,
            amount=amount,
            steps=[step],
            estimated_output=estimated_output,
            estimated_gas=payload.estimated_gas,
            estimated_time=duration,
            price_impact=payload.price_impact_percent / 100,
            risks=risks,
            advantages=["MEV protection", "Gasless for the maker"],
            quote_id=payload.quote_id,
        )

    async def create_order(
        self,
        chain_id: int,
        order: dict,
        signature: str,
        quote_id: str,
        extension: str = "0x",
    ) -> FusionOrderPayload:
        """Submit a signed order to the relayer.

        Raises:
            ProviderError: if the relayer rejects the order or is unreachable
        """
        body = {
            "order": order,
            "signature": signature,
            "quoteId": quote_id,
            "extension": extension,
        }
        data = await self._request_json(
            "POST",
            f"{self.base_url}/relayer/v2.0/{chain_id}/order/submit",
            json=body,
        )
        if isinstance(data, dict) and "quoteId" not in data:
            data = {**data, "quoteId": quote_id}
        try:
            result: FusionOrderPayload = parse_payload("fusion_order", data)
        except ValidationError as e:
            raise self._invalid_payload(e)

        logger.info(f"Fusion order submitted: {result.order_id} on chain {chain_id}")
        return result

    async def get_order_status(self, order_hash: str, chain_id: int = 1) -> FusionOrderStatusPayload:
        """Poll the status of a submitted order.

        Raises:
            ProviderError: if the orders API fails or the order is unknown
        """
        data = await self._request_json(
            "GET",
            f"{self.base_url}/orders/v2.0/{chain_id}/order/status/{order_hash}",
        )
        if isinstance(data, dict) and not ({"orderHash", "orderId"} & data.keys()):
            data = {**data, "orderHash": order_hash}
        try:
            return parse_payload("fusion_order_status", data)
        except ValidationError as e:
            raise self._invalid_payload(e)
