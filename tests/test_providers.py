"""Tests for upstream providers against mocked HTTP transports."""

import httpx
import pytest

from crossswap.errors import ProviderError, ProviderErrorKind
from crossswap.routing import (
    AggregationProvider,
    FusionProvider,
    GasOracle,
    SimulatedDexAggregator,
    SimulatedFusionRouter,
)
from crossswap.routing.base import ProviderKind, QuoteOptions
from crossswap.routing.gas import FALLBACK_GAS_PRICES, GWEI, resolve_gas_price
from crossswap.routing.oneinch import UNREPORTED_IMPACT_RISK
from crossswap.tokens import NATIVE_PLACEHOLDER, Amount

FUSION_QUOTE = {
    "quoteId": "q-123",
    "dstTokenAmount": "3890000000",
    "srcTokenAmount": "1000000000000000000",
    "recommended_preset": "fast",
    "presets": {
        "fast": {"auctionDuration": 180, "costInDstToken": "1500000"},
        "slow": {"auctionDuration": 600, "costInDstToken": "500000"},
    },
    "priceImpactPercent": 0.2,
}

AGGREGATION_QUOTE = {
    "dstAmount": "3895000000",
    "gas": 210000,
    "protocols": [
        [
            [{"name": "UNISWAP_V3", "part": 100, "fromTokenAddress": NATIVE_PLACEHOLDER, "toTokenAddress": "0xweth"}],
            [
                {"name": "CURVE", "part": 70, "fromTokenAddress": "0xweth", "toTokenAddress": "0xdai"},
                {"name": "BALANCER", "part": 30, "fromTokenAddress": "0xweth", "toTokenAddress": "0xdai"},
            ],
            [{"name": "SUSHI", "part": 100, "fromTokenAddress": "0xdai", "toTokenAddress": "0xusdc"}],
        ]
    ],
}

GAS_PRICES = {
    "baseFee": "20000000000",
    "low": {"maxFeePerGas": "21000000000", "maxPriorityFeePerGas": "1000000000"},
    "medium": {"maxFeePerGas": "23000000000", "maxPriorityFeePerGas": "1500000000"},
    "high": {"maxFeePerGas": "25000000000", "maxPriorityFeePerGas": "2000000000"},
}


def mock_transport(body=None, status=200, seen=None):
    """Transport answering every request with one canned response."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body or "")

    return httpx.MockTransport(handler)


def unreachable_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


class TestFusionProvider:
    """Tests for FusionProvider."""

    async def test_quote_maps_to_proposal(self, registry, eth, usdc, one_eth):
        """Test quote maps to proposal."""
        seen = []
        provider = FusionProvider(api_key="key", transport=mock_transport(FUSION_QUOTE, seen=seen), registry=registry)

        proposal = await provider.fetch_quote(eth, usdc, one_eth)

        assert provider.kind == ProviderKind.RFQ
        assert proposal.id == "fusion-q-123"
        assert proposal.quote_id == "q-123"
        assert proposal.estimated_output == 3890000000
        assert proposal.estimated_time == 180
        assert proposal.price_impact == pytest.approx(0.002)
        assert proposal.steps[0].fee == 1500000
        assert "MEV protection" in proposal.advantages

        request = seen[0]
        assert request.url.path.endswith("/quoter/v2.0/1/quote/receive")
        assert request.url.params["srcTokenAddress"] == NATIVE_PLACEHOLDER
        assert request.url.params["amount"] == str(10**18)
        assert request.headers["Authorization"] == "Bearer key"

    async def test_long_auction_is_a_risk(self, eth, usdc, one_eth):
        """Test long auction is a risk."""
        body = {**FUSION_QUOTE, "recommended_preset": "slow"}
        provider = FusionProvider(transport=mock_transport(body))

        proposal = await provider.fetch_quote(eth, usdc, one_eth)

        assert proposal.estimated_time == 600
        assert any("Long auction" in r for r in proposal.risks)

    async def test_btc_quotes_on_wrapped_chain(self, registry, btc, eth):
        """Test BTC quotes on wrapped chain."""
        seen = []
        provider = FusionProvider(transport=mock_transport(FUSION_QUOTE, seen=seen), registry=registry)

        await provider.fetch_quote(btc, eth, Amount.from_decimal("0.5", 8))

        wbtc = registry.resolve("WBTC")
        assert "/quoter/v2.0/1/" in seen[0].url.path
        assert seen[0].url.params["srcTokenAddress"] == wbtc.address.lower()

    async def test_missing_output_is_bad_response(self, eth, usdc, one_eth):
        """Test missing output is bad response."""
        provider = FusionProvider(transport=mock_transport({"quoteId": "q-1"}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_quote(eth, usdc, one_eth)

        assert exc_info.value.kind == ProviderErrorKind.BAD_RESPONSE

    async def test_non_json_body_is_bad_response(self, eth, usdc, one_eth):
        """Test non-JSON body is bad response."""
        provider = FusionProvider(transport=mock_transport("<html>oops</html>"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_quote(eth, usdc, one_eth)

        assert exc_info.value.kind == ProviderErrorKind.BAD_RESPONSE

    @pytest.mark.parametrize(
        "status,kind",
        [
            (429, ProviderErrorKind.RATE_LIMITED),
            (500, ProviderErrorKind.HTTP_STATUS),
            (400, ProviderErrorKind.HTTP_STATUS),
        ],
    )
    async def test_http_errors_are_classified(self, eth, usdc, one_eth, status, kind):
        """Test HTTP errors are classified."""
        provider = FusionProvider(transport=mock_transport({"error": "x"}, status=status))

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_quote(eth, usdc, one_eth)

        assert exc_info.value.kind == kind
        assert exc_info.value.status == status

    async def test_network_error(self, eth, usdc, one_eth):
        """Test network errors are classified."""
        provider = FusionProvider(transport=unreachable_transport())

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_quote(eth, usdc, one_eth)

        assert exc_info.value.kind == ProviderErrorKind.NETWORK

    async def test_create_order(self):
        """Test order submission to the relayer."""
        seen = []
        provider = FusionProvider(transport=mock_transport({"orderHash": "0xabc", "status": "pending"}, seen=seen))

        result = await provider.create_order(1, {"maker": "0x1"}, "0xsig", "q-123")

        assert result.order_id == "0xabc"
        assert result.quote_id == "q-123"
        assert seen[0].method == "POST"
        assert seen[0].url.path.endswith("/relayer/v2.0/1/order/submit")

    async def test_order_status(self):
        """Test order status lookup."""
        seen = []
        provider = FusionProvider(transport=mock_transport({"status": "filled", "txHash": "0xtx"}, seen=seen))

        status = await provider.get_order_status("0xabc", chain_id=56)

        assert status.order_id == "0xabc"
        assert status.status == "filled"
        assert status.tx_hash == "0xtx"
        assert seen[0].url.path.endswith("/orders/v2.0/56/order/status/0xabc")


class TestAggregationProvider:
    """Tests for AggregationProvider."""

    async def test_steps_follow_protocol_hops(self, eth, usdc, one_eth):
        """Test steps follow protocol hops."""
        seen = []
        provider = AggregationProvider(transport=mock_transport(AGGREGATION_QUOTE, seen=seen))

        proposal = await provider.fetch_quote(eth, usdc, one_eth, options=QuoteOptions(gas_price="12345"))

        assert provider.kind == ProviderKind.AGGREGATION
        assert proposal.protocols == ("UNISWAP_V3", "CURVE", "SUSHI")
        assert proposal.steps[0].from_token == "ETH"
        assert proposal.steps[-1].to_token == "USDC"
        assert proposal.estimated_output == 3895000000
        assert proposal.estimated_gas == 210000
        assert any("Multi-hop" in r for r in proposal.risks)
        assert proposal.gas_price == 12345
        assert seen[0].url.params["gasPrice"] == "12345"
        assert seen[0].url.path.endswith("/1/quote")

    async def test_no_protocols_gives_single_step(self, eth, usdc, one_eth):
        """Test no protocols gives single step."""
        provider = AggregationProvider(transport=mock_transport({"dstAmount": "100", "gas": 0}))

        proposal = await provider.fetch_quote(eth, usdc, one_eth, options=QuoteOptions(gas_price=1))

        assert proposal.protocols == ("1inch Aggregation",)
        assert proposal.risks == [UNREPORTED_IMPACT_RISK]
        assert proposal.price_impact == 0.0

    async def test_reported_price_impact_is_used(self, eth, usdc, one_eth):
        """Test an upstream price impact replaces the unreported-impact note."""
        quote = {**AGGREGATION_QUOTE, "priceImpact": 0.3}
        provider = AggregationProvider(transport=mock_transport(quote))

        proposal = await provider.fetch_quote(eth, usdc, one_eth, options=QuoteOptions(gas_price=1))

        assert proposal.price_impact == pytest.approx(0.003)
        assert UNREPORTED_IMPACT_RISK not in proposal.risks

    async def test_preset_resolved_through_oracle(self, eth, usdc, one_eth):
        """Test preset resolved through oracle."""
        seen = []
        oracle = GasOracle(transport=mock_transport(GAS_PRICES))
        provider = AggregationProvider(transport=mock_transport(AGGREGATION_QUOTE, seen=seen), gas_oracle=oracle)

        proposal = await provider.fetch_quote(eth, usdc, one_eth, options=QuoteOptions(gas_price="fast"))

        assert proposal.gas_price == 25 * GWEI
        assert seen[0].url.params["gasPrice"] == str(25 * GWEI)

    async def test_gas_fallback_when_oracle_unreachable(self, eth, usdc, one_eth):
        """Test gas fallback when oracle unreachable."""
        seen = []
        oracle = GasOracle(transport=unreachable_transport())
        provider = AggregationProvider(transport=mock_transport(AGGREGATION_QUOTE, seen=seen), gas_oracle=oracle)

        proposal = await provider.fetch_quote(eth, usdc, one_eth, options=QuoteOptions(gas_price="fast"))

        assert proposal.gas_price == 50 * GWEI
        assert seen[0].url.params["gasPrice"] == str(50 * GWEI)

    async def test_unknown_preset_is_unsupported(self, eth, usdc, one_eth):
        """Test unknown preset is unsupported."""
        provider = AggregationProvider(transport=mock_transport(AGGREGATION_QUOTE))

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_quote(eth, usdc, one_eth, options=QuoteOptions(gas_price="ludicrous"))

        assert exc_info.value.kind == ProviderErrorKind.UNSUPPORTED


class TestGas:
    """Tests for gas resolution and analysis."""

    async def test_numeric_values_pass_through(self):
        """Test numeric values pass through."""
        assert await resolve_gas_price(7, 1, None) == 7
        assert await resolve_gas_price("42", 1, None) == 42

    async def test_preset_without_oracle_uses_fallback(self):
        """Test preset without oracle uses fallback."""
        assert await resolve_gas_price(None, 1, None) == FALLBACK_GAS_PRICES["fast"]
        assert await resolve_gas_price("slow", 1, None) == 20 * GWEI

    async def test_oracle_server_error_falls_back(self):
        """Test oracle server error falls back."""
        oracle = GasOracle(transport=mock_transport({"error": "down"}, status=503))
        assert await resolve_gas_price("instant", 1, oracle) == 80 * GWEI

    async def test_unknown_preset(self):
        """Test unknown preset is rejected."""
        with pytest.raises(ValueError):
            await resolve_gas_price("warp", 1, None)

    async def test_analyze(self):
        """Test gas analysis of a live oracle response."""
        oracle = GasOracle(transport=mock_transport(GAS_PRICES))

        analysis = await oracle.analyze(1)

        assert not analysis.is_fallback
        assert analysis.presets["instant"] == analysis.presets["fast"] == 25 * GWEI
        assert analysis.base_fee == 20 * GWEI
        assert analysis.recommendation.startswith("GOOD_TIME")
        assert analysis.trend.startswith("STABLE")

    async def test_analyze_falls_back(self):
        """Test gas analysis falls back when the oracle fails."""
        analysis = await GasOracle(transport=unreachable_transport()).analyze(1)

        assert analysis.is_fallback
        assert analysis.to_dict()["presets"]["fast"] == str(50 * GWEI)


class TestSimulatedProviders:
    async def test_deterministic_quotes(self, eth, usdc, one_eth):
        """Test deterministic quotes."""
        provider = SimulatedDexAggregator()

        first = await provider.fetch_quote(eth, usdc, one_eth)
        second = await provider.fetch_quote(eth, usdc, one_eth)

        assert first.id == second.id
        assert first.estimated_output == second.estimated_output
        assert 3_880 * 10**6 < first.estimated_output < 3_900 * 10**6
        assert first.protocols == ("Uniswap V3",)

    async def test_non_hub_pair_routes_through_weth(self, registry):
        """Test non hub pair routes through WETH."""
        usdc = registry.resolve("USDC")
        dai = registry.resolve("DAI")

        proposal = await SimulatedDexAggregator().fetch_quote(usdc, dai, Amount.from_decimal("100", 6))

        assert proposal.protocols == ("Uniswap V3", "Curve")

    async def test_fusion_sim_is_slower_and_gasless(self, eth, usdc, one_eth):
        """Test fusion sim is slower and gasless."""
        proposal = await SimulatedFusionRouter().fetch_quote(eth, usdc, one_eth)

        assert proposal.estimated_time == 180
        assert proposal.estimated_gas == 0
        assert proposal.risks == ["Simulated quote, not executable"]

    async def test_unknown_price_is_unsupported(self, eth, usdc, one_eth):
        """Test unknown price is unsupported."""
        provider = SimulatedFusionRouter(prices={"ETH": 1})

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_quote(eth, usdc, one_eth)

        assert exc_info.value.kind == ProviderErrorKind.UNSUPPORTED
