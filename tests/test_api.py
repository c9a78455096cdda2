"""Tests for the FastAPI endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import FakeProvider, failing_provider, make_proposal
from crossswap.api.app import create_app
from crossswap.config import Settings
from crossswap.routing.aggregator import RouteAggregator
from crossswap.web.services.route_service import RouteService


@pytest.fixture
def settings():
    return Settings(dry_run=True, oneinch_api_key=None)


@pytest.fixture
def service(settings):
    return RouteService(settings)


async def make_client(service):
    transport = ASGITransport(app=create_app(service=service))
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
async def client(service):
    """Create async test client."""
    async with await make_client(service) as ac:
        yield ac


def route_body(**overrides):
    body = {"from_token": "ETH", "to_token": "USDC", "amount": "1"}
    body.update(overrides)
    return body


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        """Test health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "crossswap"

    async def test_detailed_health(self, client):
        """Test detailed health."""
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["config"]["oneinch_api_key"] == "(not set)"
        assert data["stats"]["providers"] == ["fusion_sim", "aggregation_sim"]


class TestRouteEndpoints:
    """Tests for /api/v1/routes."""

    async def test_get_routes(self, client):
        """Test get routes."""
        response = await client.post("/api/v1/routes", json=route_body())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["from_token"] == "ETH"
        assert len(data["routes"]) == 2
        assert data["best_route"] == data["routes"][0]
        assert data["routes"][0]["confidence"] >= data["routes"][1]["confidence"]
        assert data["insights"][0].startswith("Recommended:")
        assert {p["status"] for p in data["providers"]} == {"ok"}
        assert data["cached"] is False

    async def test_repeated_request_is_cached(self, client):
        """Test repeated request is cached."""
        first = (await client.post("/api/v1/routes", json=route_body())).json()
        second = (await client.post("/api/v1/routes", json=route_body())).json()

        assert second["cached"] is True
        assert [r["id"] for r in second["routes"]] == [r["id"] for r in first["routes"]]

    async def test_preference_accepted(self, client):
        """Test preference accepted."""
        response = await client.post("/api/v1/routes", json=route_body(preference="security"))
        assert response.status_code == 200

    async def test_all_providers_down(self, settings):
        """Test all providers down."""
        aggregator = RouteAggregator([failing_provider("fusion"), failing_provider("aggregation")])
        async with await make_client(RouteService(settings, aggregator=aggregator)) as client:
            response = await client.post(
                "/api/v1/routes", json=route_body(from_token="BTC", to_token="ETH", amount="0.5")
            )

        assert response.status_code == 503
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "all_providers_unavailable"
        assert set(data["providers"]) == {"fusion", "aggregation"}

    async def test_malformed_routes_give_empty_list(self, settings):
        """Test malformed routes give empty list."""

        def malformed(from_token, to_token, amount):
            proposal = make_proposal(from_token, to_token, amount)
            proposal.steps = []
            return proposal

        aggregator = RouteAggregator([FakeProvider("broken", malformed)])
        async with await make_client(RouteService(settings, aggregator=aggregator)) as client:
            response = await client.post("/api/v1/routes", json=route_body())

        assert response.status_code == 200
        assert response.json()["routes"] == []
        assert response.json()["best_route"] is None

    async def test_rate_limited(self):
        """Test over-quota requests get 429 with Retry-After."""
        settings = Settings(dry_run=True, oneinch_api_key=None, rate_limit_requests=1)
        async with await make_client(RouteService(settings)) as client:
            assert (await client.post("/api/v1/routes", json=route_body())).status_code == 200
            response = await client.post("/api/v1/routes", json=route_body())

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["error"] == "rate_limit_exceeded"

    @pytest.mark.parametrize(
        "body",
        [
            route_body(to_token="ETH"),
            route_body(amount="0"),
            route_body(amount="abc"),
            route_body(to_token="NOPE"),
            route_body(slippage="0"),
            route_body(slippage="150"),
            route_body(preference="yolo"),
            {"from_token": "ETH"},
        ],
    )
    async def test_invalid_requests(self, client, body):
        """Test invalid requests."""
        response = await client.post("/api/v1/routes", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    async def test_unknown_preferred_provider(self, client):
        """Test unknown preferred provider."""
        response = await client.post("/api/v1/routes", json=route_body(preferred_provider="nope"))
        assert response.status_code == 400


class TestPredictionEndpoint:
    async def test_predict(self, client):
        """Test prediction agrees with the ranked routes."""
        routes = (await client.post("/api/v1/routes", json=route_body())).json()
        response = await client.post("/api/v1/routes/predict", json=route_body())

        assert response.status_code == 200
        data = response.json()
        assert 0 < data["optimal_slippage"] < 1
        assert 0 <= data["success_probability"] <= 1
        assert data["estimated_time"] > 0
        assert data["recommended_route"]["route_id"] == routes["best_route"]["id"]
        assert data["route_ordering"] == [r["id"] for r in routes["routes"]]


class TestOutcomeEndpoint:
    """Outcome recording never fails the caller."""

    async def test_records_outcome(self, client, service):
        """Test records outcome."""
        body = {
            "from_token": "ETH",
            "to_token": "USDC",
            "amount": "1",
            "route_path": "Uniswap V3",
            "duration_seconds": 42,
            "gas_cost": 150000,
            "slippage": 0.003,
            "success": True,
        }

        response = await client.post("/api/v1/outcomes", json=body)

        assert response.status_code == 200
        assert response.json() == {"success": True, "recorded": 1}
        assert service.recorder.path_stats("Uniswap V3").count == 1

    @pytest.mark.parametrize("content", [b"not json", b"[1, 2]", b'{"duration_seconds": "soon"}'])
    async def test_malformed_outcome_still_200(self, client, service, content):
        """Test malformed outcome bodies still answer 200."""
        response = await client.post(
            "/api/v1/outcomes", content=content, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["recorded"] == 0

    @pytest.mark.parametrize("literal", [b"NaN", b"Infinity"])
    async def test_non_finite_outcomes_do_not_break_routes(self, client, service, literal):
        """Test non-finite durations are dropped and routes still score."""
        content = (
            b'{"from_token": "ETH", "to_token": "USDC", "amount": "1", '
            b'"route_path": "1inch Fusion", "gas_cost": 0, "slippage": 0.001, '
            b'"success": true, "duration_seconds": ' + literal + b"}"
        )
        for _ in range(3):
            response = await client.post(
                "/api/v1/outcomes", content=content, headers={"Content-Type": "application/json"}
            )
            assert response.status_code == 200
            assert response.json()["recorded"] == 0

        response = await client.post("/api/v1/routes", json=route_body())

        assert response.status_code == 200
        assert len(response.json()["routes"]) == 2
        assert service.recorder.path_stats("1inch Fusion") is None


class TestGasAndOrders:
    async def test_gas_fallback_without_oracle(self, client):
        """Test gas fallback without oracle."""
        response = await client.get("/api/v1/gas/1")

        assert response.status_code == 200
        data = response.json()
        assert data["is_fallback"] is True
        assert data["presets"]["fast"] == "50000000000"

    async def test_order_status_needs_fusion(self, client):
        """Test order status needs fusion."""
        response = await client.get("/api/v1/orders/0xabc")

        assert response.status_code == 502
        assert response.json()["error"] == "provider_error"
