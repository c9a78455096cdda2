"""Token identity, amounts and the static token registry.

Tokens are looked up from the registry and never built ad hoc by the
routing core. Amounts keep both the human decimal string and the exact
base-unit integer; every comparison inside the core uses the integer.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from crossswap.errors import InvalidRequestError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_PLACEHOLDER = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

# Chain IDs
CHAIN_IDS = {
    "bitcoin": 0,
    "ethereum": 1,
    "bsc": 56,
    "polygon": 137,
    "arbitrum": 42161,
}


def normalize_address(address: Optional[str]) -> str:
    """Lower-case an address for comparison ("" when absent)."""
    return (address or "").strip().lower()


def is_native_address(address: Optional[str]) -> bool:
    """Check for a native-asset marker.

    The zero address, the all-`e` placeholder and a missing address all
    mean "the chain's native asset".
    """
    normalized = normalize_address(address)
    return normalized in ("", ZERO_ADDRESS, NATIVE_PLACEHOLDER)


@dataclass(frozen=True)
class Token:
    """Token identity record."""

    symbol: str
    name: str
    decimals: int
    network: str
    chain_id: int
    address: Optional[str] = None  # None for native assets
    is_native: bool = False
    is_wrapped: bool = False
    verified: bool = True

    @property
    def token_id(self) -> str:
        """Stable identifier used in cache fingerprints."""
        if self.is_native or is_native_address(self.address):
            return f"{self.chain_id}:native:{self.symbol.upper()}"
        return f"{self.chain_id}:{normalize_address(self.address)}"


@dataclass(frozen=True)
class Amount:
    """A monetary quantity.

    Invariant: base_units == round(Decimal(value) * 10**decimals).
    """

    value: str
    base_units: int
    decimals: int

    @classmethod
    def from_decimal(cls, value, decimals: int) -> "Amount":
        """Build from a human-readable decimal (string, int or Decimal)."""
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidRequestError(f"Amount '{value}' is not a valid number")

        if not parsed.is_finite():
            raise InvalidRequestError(f"Amount '{value}' is not a valid number")
        if parsed < 0:
            raise InvalidRequestError("Amount must not be negative")

        scaled = (parsed * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_HALF_UP)
        return cls(value=format(parsed.normalize(), "f"), base_units=int(scaled), decimals=decimals)

    @classmethod
    def from_base_units(cls, base_units: int, decimals: int) -> "Amount":
        """Build from an exact smallest-denomination integer."""
        if base_units < 0:
            raise InvalidRequestError("Amount must not be negative")
        value = Decimal(base_units) / (Decimal(10) ** decimals)
        return cls(value=format(value.normalize(), "f"), base_units=int(base_units), decimals=decimals)

    @property
    def decimal(self) -> Decimal:
        """Display value as Decimal."""
        return Decimal(self.value)

    @property
    def is_positive(self) -> bool:
        return self.base_units > 0


def _erc20(symbol: str, name: str, decimals: int, network: str, address: str, **kwargs) -> Token:
    return Token(
        symbol=symbol,
        name=name,
        decimals=decimals,
        network=network,
        chain_id=CHAIN_IDS[network],
        address=address,
        **kwargs,
    )


def _native(symbol: str, name: str, network: str) -> Token:
    return Token(
        symbol=symbol,
        name=name,
        decimals=8 if network == "bitcoin" else 18,
        network=network,
        chain_id=CHAIN_IDS[network],
        address=None,
        is_native=True,
    )


DEFAULT_TOKENS: list[Token] = [
    # ========== Bitcoin ==========
    _native("BTC", "Bitcoin", "bitcoin"),
    # ========== Ethereum ==========
    _native("ETH", "Ether", "ethereum"),
    _erc20("WETH", "Wrapped Ether", 18, "ethereum", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", is_wrapped=True),
    _erc20("WBTC", "Wrapped Bitcoin", 8, "ethereum", "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", is_wrapped=True),
    _erc20("USDT", "Tether USD", 6, "ethereum", "0xdAC17F958D2ee523a2206206994597C13D831ec7"),
    _erc20("USDC", "USD Coin", 6, "ethereum", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"),
    _erc20("DAI", "Dai Stablecoin", 18, "ethereum", "0x6B175474E89094C44Da98b954EedcdeCB5BE3830"),
    _erc20("LINK", "Chainlink", 18, "ethereum", "0x514910771AF9Ca656af840dff83E8264EcF986CA"),
    _erc20("UNI", "Uniswap", 18, "ethereum", "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984"),
    _erc20("AAVE", "Aave", 18, "ethereum", "0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9"),
    _erc20("1INCH", "1inch", 18, "ethereum", "0x111111111117dC0aa78b770fA6A738034120C302"),
    # ========== Polygon ==========
    _native("POL", "Polygon Ecosystem Token", "polygon"),
    _erc20("WETH", "Wrapped Ether", 18, "polygon", "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619", is_wrapped=True),
    _erc20("USDT", "Tether USD", 6, "polygon", "0xc2132D05D31c914a87C6611C10748AEb04B58e8F"),
    _erc20("USDC", "USD Coin", 6, "polygon", "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"),
    # ========== Arbitrum ==========
    _native("ETH", "Ether", "arbitrum"),
    _erc20("USDC", "USD Coin", 6, "arbitrum", "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"),
    _erc20("ARB", "Arbitrum", 18, "arbitrum", "0x912CE59144191C1204E64559FE8253a0e49E6548"),
    # ========== BNB Chain ==========
    _native("BNB", "BNB", "bsc"),
    _erc20("USDT", "Tether USD", 18, "bsc", "0x55d398326f99059fF775485246999027B3197955"),
    _erc20("CAKE", "PancakeSwap", 18, "bsc", "0x0E09FaBB73Bd3Ade0a17ECC321fD13a19e81cE82"),
]

# Assets without an EVM presence are quoted through their wrapped ERC-20 on Ethereum
WRAPPED_EQUIVALENTS = {
    "BTC": ("WBTC", 1),
}


class TokenRegistry:
    """Static token lookup by chain and symbol or address."""

    def __init__(self, tokens: Optional[list[Token]] = None, default_chain_id: int = 1):
        self.default_chain_id = default_chain_id
        self._by_symbol: dict[tuple[int, str], Token] = {}
        self._by_address: dict[tuple[int, str], Token] = {}
        for token in tokens if tokens is not None else DEFAULT_TOKENS:
            self.add(token)

    def add(self, token: Token) -> None:
        """Register a token."""
        self._by_symbol[(token.chain_id, token.symbol.upper())] = token
        if token.address:
            self._by_address[(token.chain_id, normalize_address(token.address))] = token

    def get(self, chain_id: int, symbol_or_address: str) -> Optional[Token]:
        """Look up a token on a specific chain, or None if not found."""
        key = (symbol_or_address or "").strip()
        if not key:
            return None

        if key.lower().startswith("0x"):
            if is_native_address(key):
                return next(
                    (t for (cid, _), t in self._by_symbol.items() if cid == chain_id and t.is_native),
                    None,
                )
            return self._by_address.get((chain_id, normalize_address(key)))

        return self._by_symbol.get((chain_id, key.upper()))

    def resolve(self, symbol_or_address: str, chain_id: Optional[int] = None) -> Token:
        """Resolve a token, preferring the given chain then the default chain.

        Raises:
            InvalidRequestError: if no registered token matches
        """
        if not symbol_or_address or not str(symbol_or_address).strip():
            raise InvalidRequestError("Token identifier is required")

        candidates = [chain_id] if chain_id is not None else []
        candidates.append(self.default_chain_id)

        for cid in candidates:
            token = self.get(cid, symbol_or_address)
            if token:
                return token

        # Fall back to any chain for symbols that exist on exactly one network
        matches = [
            t for (_, symbol), t in self._by_symbol.items()
            if symbol == str(symbol_or_address).strip().upper()
        ]
        if len(matches) == 1:
            return matches[0]

        raise InvalidRequestError(f"Unknown token '{symbol_or_address}'")

    def wrapped_equivalent(self, token: Token) -> Optional[Token]:
        """Get the EVM token used to quote a non-EVM asset."""
        mapping = WRAPPED_EQUIVALENTS.get(token.symbol.upper())
        if not mapping:
            return None
        symbol, chain_id = mapping
        return self.get(chain_id, symbol)

    def __len__(self) -> int:
        return len(self._by_symbol)


def upstream_address(token: Token, registry: Optional[TokenRegistry] = None) -> str:
    """Address to send to 1inch-style APIs for a token.

    Native assets use the all-`e` placeholder; non-EVM assets are mapped
    to their wrapped ERC-20 when a registry is given.
    """
    if token.chain_id == CHAIN_IDS["bitcoin"] and registry is not None:
        wrapped = registry.wrapped_equivalent(token)
        if wrapped and wrapped.address:
            return normalize_address(wrapped.address)
    if token.is_native or is_native_address(token.address):
        return NATIVE_PLACEHOLDER
    return normalize_address(token.address)
