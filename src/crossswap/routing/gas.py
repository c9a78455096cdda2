"""Gas price oracle and preset resolution.

Named presets ("slow", "standard", "fast", "instant") are resolved through
the gas price API. If that lookup fails, a hardcoded conservative value is
used instead of failing the quote.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from crossswap.errors import ProviderError
from crossswap.routing.base import UpstreamClient
from crossswap.routing.schemas import GasPricePayload, parse_payload

logger = logging.getLogger(__name__)

GWEI = 10**9

GAS_PRESETS = ("slow", "standard", "fast", "instant")

# Used when the oracle is unreachable (wei)
FALLBACK_GAS_PRICES: dict[str, int] = {
    "slow": 20 * GWEI,
    "standard": 30 * GWEI,
    "fast": 50 * GWEI,
    "instant": 80 * GWEI,
}


@dataclass
class GasAnalysis:
    """Named presets plus a coarse reading of network conditions."""

    chain_id: int
    presets: dict[str, int]
    base_fee: int
    recommendation: str
    trend: str
    optimal_timing: str
    is_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "chain_id": self.chain_id,
            "presets": {k: str(v) for k, v in self.presets.items()},
            "base_fee": str(self.base_fee),
            "recommendation": self.recommendation,
            "trend": self.trend,
            "optimal_timing": self.optimal_timing,
            "is_fallback": self.is_fallback,
        }


def gas_recommendation(base_fee: int, fast: int) -> str:
    """Classify how expensive executing now is relative to the base fee."""
    if base_fee <= 0:
        return "Use standard gas price"
    if fast < base_fee * 1.1:
        return "EXECUTE_NOW - Gas prices are very low"
    if fast < base_fee * 1.3:
        return "GOOD_TIME - Gas prices are reasonable"
    if fast < base_fee * 2.0:
        return "CONSIDER_WAITING - Gas prices are high"
    return "WAIT - Gas prices are extremely high"


def gas_trend(standard: int, fast: int) -> str:
    """Estimate congestion from the spread between standard and fast."""
    if standard <= 0 or fast <= 0:
        return "UNKNOWN - Insufficient data"
    ratio = fast / standard
    if ratio < 1.2:
        return "STABLE - Low network congestion"
    if ratio < 1.5:
        return "MODERATE - Normal network activity"
    return "VOLATILE - High network congestion"


def optimal_timing(hour_utc: int) -> str:
    if 2 <= hour_utc <= 8:
        return "OPTIMAL - Off-peak hours"
    if 14 <= hour_utc <= 18:
        return "PEAK - High activity period, consider waiting"
    return "NORMAL - Standard network activity"


def fallback_analysis(chain_id: int) -> GasAnalysis:
    """Analysis built from the hardcoded presets."""
    presets = dict(FALLBACK_GAS_PRICES)
    return GasAnalysis(
        chain_id=chain_id,
        presets=presets,
        base_fee=0,
        recommendation=gas_recommendation(0, presets["fast"]),
        trend=gas_trend(presets["standard"], presets["fast"]),
        optimal_timing=optimal_timing(datetime.now(timezone.utc).hour),
        is_fallback=True,
    )


class GasOracle(UpstreamClient):
    """Client for the 1inch gas price API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.1inch.dev/gas-price/v1.5",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key=api_key, timeout=timeout, transport=transport)
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "gas-oracle"

    async def get_presets(self, chain_id: int) -> dict[str, int]:
        """Get preset gas prices (wei) for a chain.

        Raises:
            ProviderError: if the API is unreachable or the body is invalid
        """
        payload = await self._fetch(chain_id)
        return self._presets_from(payload)

    async def analyze(self, chain_id: int) -> GasAnalysis:
        """Get presets with recommendation and trend; falls back to constants."""
        hour = datetime.now(timezone.utc).hour
        try:
            payload = await self._fetch(chain_id)
        except ProviderError as e:
            logger.warning(f"Gas oracle unavailable for chain {chain_id}, using fallback presets: {e}")
            return fallback_analysis(chain_id)

        presets = self._presets_from(payload)
        base_fee = int(payload.base_fee) if payload.base_fee.isdigit() else 0
        return GasAnalysis(
            chain_id=chain_id,
            presets=presets,
            base_fee=base_fee,
            recommendation=gas_recommendation(base_fee, presets["fast"]),
            trend=gas_trend(presets["standard"], presets["fast"]),
            optimal_timing=optimal_timing(hour),
        )

    async def _fetch(self, chain_id: int) -> GasPricePayload:
        data = await self._request_json("GET", f"{self.base_url}/{chain_id}")
        try:
            return parse_payload("gas", data)
        except ValidationError as e:
            raise self._invalid_payload(e)

    @staticmethod
    def _presets_from(payload: GasPricePayload) -> dict[str, int]:
        def wei(value: str) -> int:
            return int(value) if value.isdigit() else 0

        instant = payload.instant or payload.high
        return {
            "slow": wei(payload.low.max_fee_per_gas),
            "standard": wei(payload.medium.max_fee_per_gas),
            "fast": wei(payload.high.max_fee_per_gas),
            "instant": wei(instant.max_fee_per_gas),
        }


async def resolve_gas_price(
    gas_price: Union[str, int, None],
    chain_id: int,
    oracle: Optional[GasOracle],
    default_preset: str = "fast",
) -> int:
    """Resolve a preset name or numeric value to a gas price in wei.

    Numeric values pass through. Preset names go to the oracle; any oracle
    failure substitutes the hardcoded fallback for that preset.

    Raises:
        ValueError: for an unknown preset name
    """
    if gas_price is None or gas_price == "":
        gas_price = default_preset

    if isinstance(gas_price, int):
        return gas_price

    text = str(gas_price).strip().lower()
    if text.isdigit():
        return int(text)
    if text not in GAS_PRESETS:
        raise ValueError(f"Unknown gas preset '{gas_price}'")

    if oracle is not None:
        try:
            presets = await oracle.get_presets(chain_id)
            value = presets.get(text, 0)
            if value > 0:
                return value
            logger.warning(f"Gas oracle returned no '{text}' price for chain {chain_id}")
        except ProviderError as e:
            logger.warning(f"Gas oracle lookup failed ({e}); using fallback for '{text}'")

    return FALLBACK_GAS_PRICES[text]
