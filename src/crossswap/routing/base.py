"""Common route model and the abstract provider interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from crossswap.errors import ProviderError, ProviderErrorKind
from crossswap.tokens import CHAIN_IDS, Amount, Token, TokenRegistry, upstream_address

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Known upstream provider families."""

    RFQ = "rfq"
    AGGREGATION = "aggregation"
    SIMULATED = "simulated"


class UserPreference(str, Enum):
    """Stated user preference that shifts scoring weights."""

    BALANCED = "balanced"
    SPEED = "speed"
    COST = "cost"
    SECURITY = "security"


@dataclass
class RouteStep:
    """One hop of a route.

    Amounts are base units. Upstreams that only report totals leave
    intermediate hop amounts at 0.
    """

    protocol: str
    from_token: str
    to_token: str
    amount_in: int
    estimated_out: int
    fee: int = 0


@dataclass
class RouteProposal:
    """A candidate path from one token to another, produced by one provider."""

    id: str
    provider: str
    from_token: Token
    to_token: Token
    amount: Amount
    steps: list[RouteStep]
    estimated_output: int  # base units of to_token
    estimated_gas: int = 0  # gas units, 0 = unknown
    estimated_time: int = 0  # seconds
    price_impact: float = 0.0  # fraction, 0.01 = 1%
    risks: list[str] = field(default_factory=list)
    advantages: list[str] = field(default_factory=list)
    gas_price: int = 0  # wei used for the quote, 0 = not applicable
    quote_id: Optional[str] = None

    # Attached by the scorer
    confidence: Optional[float] = None
    risk_score: Optional[float] = None
    savings_estimate: Optional[float] = None
    gas_optimization: Optional[float] = None

    @property
    def protocols(self) -> tuple[str, ...]:
        """Ordered protocol names of the steps."""
        return tuple(step.protocol for step in self.steps)

    @property
    def path_signature(self) -> str:
        """Key used to match recorded outcomes against this route."""
        return "->".join(self.protocols)

    @property
    def estimated_output_amount(self) -> Amount:
        return Amount.from_base_units(max(self.estimated_output, 0), self.to_token.decimals)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "provider": self.provider,
            "from_token": self.from_token.symbol,
            "to_token": self.to_token.symbol,
            "amount": self.amount.value,
            "amount_base_units": str(self.amount.base_units),
            "estimated_output": self.estimated_output_amount.value,
            "estimated_output_base_units": str(self.estimated_output),
            "steps": [
                {
                    "protocol": s.protocol,
                    "from_token": s.from_token,
                    "to_token": s.to_token,
                    "amount_in": str(s.amount_in),
                    "estimated_out": str(s.estimated_out),
                    "fee": str(s.fee),
                }
                for s in self.steps
            ],
            "estimated_gas": self.estimated_gas,
            "estimated_time": self.estimated_time,
            "price_impact": self.price_impact,
            "risks": list(self.risks),
            "advantages": list(self.advantages),
            "gas_price": str(self.gas_price),
            "quote_id": self.quote_id,
        }


@dataclass
class ScoredRoute:
    """A route proposal with its required scores."""

    proposal: RouteProposal
    confidence: float
    risk_score: float
    savings_estimate: float
    execution_time: int
    gas_optimization: float

    @property
    def id(self) -> str:
        return self.proposal.id

    @property
    def provider(self) -> str:
        return self.proposal.provider

    @property
    def estimated_output(self) -> int:
        return self.proposal.estimated_output

    @property
    def estimated_gas(self) -> int:
        return self.proposal.estimated_gas

    def to_dict(self) -> dict:
        data = self.proposal.to_dict()
        data.update(
            {
                "confidence": round(self.confidence, 6),
                "risk_score": round(self.risk_score, 6),
                "savings_estimate": round(self.savings_estimate, 6),
                "execution_time": self.execution_time,
                "gas_optimization": round(self.gas_optimization, 6),
            }
        )
        return data


@dataclass
class QuoteOptions:
    """Per-request quoting options."""

    gas_price: Union[str, int, None] = None  # preset name or wei
    slippage_percent: Optional[float] = None
    chain_id: Optional[int] = None


class RouteProvider(ABC):
    """Abstract base class for quote providers.

    Implementations either return a fully populated RouteProposal or raise
    ProviderError; they never return partial proposals.
    """

    timeout: float = 30.0
    enabled: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Provider family."""
        pass

    @abstractmethod
    async def fetch_quote(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        options: Optional[QuoteOptions] = None,
    ) -> RouteProposal:
        """
        Get a route proposal.

        Args:
            from_token: Source token
            to_token: Destination token
            amount: Input amount (base units are sent upstream)
            wallet_address: Optional taker wallet
            options: Gas preset, slippage and chain overrides

        Returns:
            RouteProposal built from the upstream response

        Raises:
            ProviderError: on timeout, non-2xx, or a body failing validation
        """
        pass

    def supports_pair(self, from_token: Token, to_token: Token) -> bool:
        """Check if this provider can quote the pair."""
        return from_token.token_id != to_token.token_id


class UpstreamClient:
    """Shared HTTP plumbing for clients of an authenticated REST API.

    Subclasses provide `name`, used in logs and error reasons.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        """Get API headers with authorization."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _request_json(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ):
        """Perform a request and decode the JSON body.

        Raises:
            ProviderError: classified by failure type
        """
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._get_headers(),
                    params=params,
                    json=json,
                )
        except httpx.TimeoutException:
            raise ProviderError(
                self.name,
                ProviderErrorKind.TIMEOUT,
                f"{self.name} did not respond within {self.timeout:.0f}s",
            )
        except httpx.HTTPError as e:
            raise ProviderError(
                self.name,
                ProviderErrorKind.NETWORK,
                f"Could not reach {self.name}: {type(e).__name__}",
            )

        if not response.is_success:
            logger.warning(f"{self.name} API error: {response.status_code} - {response.text[:500]}")
            raise ProviderError.from_status(self.name, response.status_code)

        try:
            return response.json()
        except ValueError:
            logger.warning(f"{self.name} returned a non-JSON body: {response.text[:200]}")
            raise ProviderError(
                self.name,
                ProviderErrorKind.BAD_RESPONSE,
                f"{self.name} returned an unreadable response",
            )

    def _invalid_payload(self, error: ValidationError) -> ProviderError:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in error.errors()[:5])
        logger.warning(f"{self.name} response failed validation: {fields}")
        return ProviderError(
            self.name,
            ProviderErrorKind.BAD_RESPONSE,
            f"{self.name} returned a response missing expected fields",
        )


class HttpRouteProvider(UpstreamClient, RouteProvider):
    """Route provider backed by an authenticated REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[TokenRegistry] = None,
    ):
        super().__init__(api_key=api_key, timeout=timeout, transport=transport)
        self.registry = registry

    def _quote_chain_id(self, from_token: Token, options: Optional[QuoteOptions] = None) -> int:
        """Chain the upstream is asked to quote on.

        Non-EVM assets are quoted on the chain of their wrapped equivalent.
        """
        if options and options.chain_id is not None:
            return options.chain_id
        if self.registry is not None:
            wrapped = self.registry.wrapped_equivalent(from_token)
            if wrapped is not None and from_token.chain_id == CHAIN_IDS["bitcoin"]:
                return wrapped.chain_id
        return from_token.chain_id

    def _address(self, token: Token) -> str:
        return upstream_address(token, self.registry)
