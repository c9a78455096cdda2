"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Optional

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["ONEINCH_API_KEY"] = ""
os.environ["DEBUG"] = "true"

from crossswap.errors import ProviderError, ProviderErrorKind
from crossswap.routing.base import (
    ProviderKind,
    QuoteOptions,
    RouteProposal,
    RouteProvider,
    RouteStep,
)
from crossswap.tokens import Amount, Token, TokenRegistry


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_proposal(
    from_token: Token,
    to_token: Token,
    amount: Amount,
    id: str = "route-1",
    provider: str = "fake",
    protocols: tuple = ("Uniswap V3",),
    estimated_output: int = 10**18,
    estimated_gas: int = 150000,
    estimated_time: int = 30,
    price_impact: float = 0.001,
    risks: Optional[list] = None,
) -> RouteProposal:
    steps = [
        RouteStep(
            protocol=name,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount_in=amount.base_units if i == 0 else 0,
            estimated_out=estimated_output if i == len(protocols) - 1 else 0,
        )
        for i, name in enumerate(protocols)
    ]
    return RouteProposal(
        id=id,
        provider=provider,
        from_token=from_token,
        to_token=to_token,
        amount=amount,
        steps=steps,
        estimated_output=estimated_output,
        estimated_gas=estimated_gas,
        estimated_time=estimated_time,
        price_impact=price_impact,
        risks=list(risks or []),
    )


class FakeProvider(RouteProvider):
    """Provider returning canned proposals, or raising a canned error."""

    def __init__(
        self,
        name: str,
        proposal_factory=None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        timeout: float = 5.0,
    ):
        self._name = name
        self.proposal_factory = proposal_factory
        self.error = error
        self.delay = delay
        self.timeout = timeout
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.SIMULATED

    async def fetch_quote(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        options: Optional[QuoteOptions] = None,
    ) -> RouteProposal:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.proposal_factory(from_token, to_token, amount)


def failing_provider(name: str) -> FakeProvider:
    return FakeProvider(
        name,
        error=ProviderError(name, ProviderErrorKind.HTTP_STATUS, f"{name} is temporarily unavailable.", 503),
    )


@pytest.fixture
def registry() -> TokenRegistry:
    return TokenRegistry()


@pytest.fixture
def eth(registry) -> Token:
    return registry.resolve("ETH")


@pytest.fixture
def usdc(registry) -> Token:
    return registry.resolve("USDC")


@pytest.fixture
def btc(registry) -> Token:
    return registry.resolve("BTC")


@pytest.fixture
def one_eth(eth) -> Amount:
    return Amount.from_decimal("1", eth.decimals)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
