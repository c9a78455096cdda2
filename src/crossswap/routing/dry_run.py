"""Simulated providers used when no API key is configured or dry_run is on."""

import hashlib
from abc import abstractmethod
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from crossswap.errors import ProviderError, ProviderErrorKind
from crossswap.routing.base import (
    ProviderKind,
    QuoteOptions,
    RouteProposal,
    RouteProvider,
    RouteStep,
)
from crossswap.tokens import Amount, Token

# Simulated market prices in USD
# These are for demonstration purposes only and should not be used for real trading
SIMULATED_PRICES: dict[str, Decimal] = {
    "BTC": Decimal("100000.00"),
    "WBTC": Decimal("100000.00"),
    "ETH": Decimal("3900.00"),
    "WETH": Decimal("3900.00"),
    "BNB": Decimal("710.00"),
    "POL": Decimal("0.62"),
    "ARB": Decimal("0.85"),

    # Stablecoins
    "USDT": Decimal("1.00"),
    "USDC": Decimal("1.00"),
    "DAI": Decimal("1.00"),

    # DeFi
    "LINK": Decimal("28.00"),
    "UNI": Decimal("17.50"),
    "AAVE": Decimal("185.00"),
    "1INCH": Decimal("0.52"),
    "CAKE": Decimal("2.80"),
}

# Trades of this USD size move the simulated price by 1%
SIMULATED_DEPTH_USD = Decimal("10000000")


def _route_id(prefix: str, from_token: Token, to_token: Token, amount: Amount) -> str:
    seed = f"{prefix}|{from_token.token_id}|{to_token.token_id}|{amount.base_units}"
    return f"{prefix}-{hashlib.sha256(seed.encode()).hexdigest()[:16]}"


class SimulatedProvider(RouteProvider):
    """Price-table provider.

    Output is deterministic for a given pair and amount:
    value in USD, minus a fixed fee, minus a size-proportional price impact.
    """

    fee_percent = Decimal("0.0")
    estimated_time = 30
    estimated_gas = 0
    advantages: tuple[str, ...] = ()

    def __init__(self, prices: Optional[dict[str, Decimal]] = None):
        self._prices = dict(prices or SIMULATED_PRICES)

    def set_price(self, asset: str, price: Decimal) -> None:
        """Set simulated price for an asset."""
        self._prices[asset.upper()] = price

    def get_price(self, asset: str) -> Optional[Decimal]:
        """Get simulated price for an asset."""
        return self._prices.get(asset.upper())

    def _simulate(self, from_token: Token, to_token: Token, amount: Amount) -> tuple[int, float]:
        """Return (output base units, price impact fraction)."""
        from_price = self.get_price(from_token.symbol)
        to_price = self.get_price(to_token.symbol)
        if from_price is None or to_price is None:
            raise ProviderError(
                self.name,
                ProviderErrorKind.UNSUPPORTED,
                f"No simulated price for {from_token.symbol}/{to_token.symbol}",
            )

        usd_value = amount.decimal * from_price
        impact = min(usd_value / SIMULATED_DEPTH_USD / 100, Decimal("0.05"))
        to_amount = usd_value / to_price * (1 - self.fee_percent) * (1 - impact)
        base_units = (to_amount * (Decimal(10) ** to_token.decimals)).to_integral_value(rounding=ROUND_DOWN)
        return int(base_units), float(impact)

    @abstractmethod
    def _steps(self, from_token: Token, to_token: Token, amount: Amount, output: int) -> list[RouteStep]:
        """Hops for a simulated route."""

    async def fetch_quote(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        wallet_address: Optional[str] = None,
        options: Optional[QuoteOptions] = None,
    ) -> RouteProposal:
        """Generate a simulated quote."""
        output, impact = self._simulate(from_token, to_token, amount)
        return RouteProposal(
            id=_route_id(self.name, from_token, to_token, amount),
            provider=self.name,
            from_token=from_token,
            to_token=to_token,
            amount=amount,
            steps=self._steps(from_token, to_token, amount, output),
            estimated_output=output,
            estimated_gas=self.estimated_gas,
            estimated_time=self.estimated_time,
            price_impact=impact,
            risks=["Simulated quote, not executable"],
            advantages=list(self.advantages),
        )


class SimulatedFusionRouter(SimulatedProvider):
    """Simulated RFQ router: slower auction, no maker gas."""

    fee_percent = Decimal("0.001")
    estimated_time = 180
    advantages = ("MEV protection", "Gasless for the maker")

    @property
    def name(self) -> str:
        return "fusion_sim"

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.RFQ

    def _steps(self, from_token, to_token, amount, output):
        return [
            RouteStep(
                protocol="1inch Fusion",
                from_token=from_token.symbol,
                to_token=to_token.symbol,
                amount_in=amount.base_units,
                estimated_out=output,
            )
        ]


class SimulatedDexAggregator(SimulatedProvider):
    """Simulated on-chain aggregator: routes through WETH for non-ETH pairs."""

    fee_percent = Decimal("0.003")
    estimated_time = 30
    estimated_gas = 180000
    advantages = ("On-chain execution, no counterparty wait",)

    HUB = ("ETH", "WETH")

    @property
    def name(self) -> str:
        return "aggregation_sim"

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.AGGREGATION

    def _steps(self, from_token, to_token, amount, output):
        if from_token.symbol in self.HUB or to_token.symbol in self.HUB:
            return [
                RouteStep(
                    protocol="Uniswap V3",
                    from_token=from_token.symbol,
                    to_token=to_token.symbol,
                    amount_in=amount.base_units,
                    estimated_out=output,
                )
            ]
        return [
            RouteStep(
                protocol="Uniswap V3",
                from_token=from_token.symbol,
                to_token="WETH",
                amount_in=amount.base_units,
                estimated_out=0,
            ),
            RouteStep(
                protocol="Curve",
                from_token="WETH",
                to_token=to_token.symbol,
                amount_in=0,
                estimated_out=output,
            ),
        ]
