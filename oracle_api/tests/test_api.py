# oracle_api/tests/test_api.py - HTTP surface
import httpx
import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock

from oracle_api.api.dependencies import get_http_client, get_oracle_adapter
from oracle_api.main import create_app
from oracle_api.services.oracle_adapter import OracleReadingAdapter
from oracle_api.tests.rpc_fakes import (
    DECIMALS_SELECTOR, FEED_ADDRESS, LATEST_ROUND_SELECTOR, feed_node, rpc_error,
)

READING_PATH = "/api/DanyilApiTest"


def client_for(app, handler) -> TestClient:
    app.dependency_overrides[get_http_client] = lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TestClient(app)


@pytest.fixture
def app(settings):
    return create_app(settings)


class TestFeedReadingRoute:

    def test_success_envelope(self, app):
        with client_for(app, feed_node()) as client:
            response = client.get(READING_PATH)

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "data": {
                "description": "ETH / USD",
                "decimals": 8,
                "price": 3500.12,
                "roundId": "123456789",
                "answeredInRound": "123456789",
                "startedAt": "2025-09-09T11:59:30.000Z",
                "updatedAt": "2025-09-09T12:00:00.000Z",
                "contract": FEED_ADDRESS,
            },
        }

    def test_network_failure_is_502(self, app):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with client_for(app, handler) as client:
            response = client.get(READING_PATH)

        assert response.status_code == 502
        body = response.json()
        assert body["ok"] is False
        assert "network" in body["error"].lower()
        assert body["details"] == {"code": "NETWORK_ERROR", "contract": FEED_ADDRESS}

    def test_network_message_keeps_code(self, app):
        node = feed_node(overrides={
            DECIMALS_SELECTOR: lambda request: rpc_error(request, {"code": -32000, "message": "network is congested"}),
        })

        with client_for(app, node) as client:
            response = client.get(READING_PATH)

        assert response.status_code == 502
        assert response.json()["details"]["code"] == "UNKNOWN_ERROR"
        assert response.json()["error"] == "network is congested"

    def test_revert_is_500(self, app):
        node = feed_node(overrides={
            LATEST_ROUND_SELECTOR: lambda request: rpc_error(request, {"code": 3, "message": "execution reverted"}),
        })

        with client_for(app, node) as client:
            response = client.get(READING_PATH)

        assert response.status_code == 500
        assert response.json() == {
            "ok": False,
            "error": "execution reverted",
            "details": {"code": "CALL_EXCEPTION", "contract": FEED_ADDRESS},
        }

    def test_unhandled_error_is_generic_envelope(self, app):
        adapter = Mock(spec=OracleReadingAdapter)
        adapter.fetch_reading = AsyncMock(side_effect=ValueError("decimals out of range: 300"))
        app.dependency_overrides[get_oracle_adapter] = lambda: adapter

        with TestClient(app) as client:
            response = client.get(READING_PATH)

        assert response.status_code == 500
        assert response.json() == {
            "ok": False,
            "error": "An unexpected error occurred",
            "details": {"code": "INTERNAL_ERROR", "contract": FEED_ADDRESS},
        }

    def test_every_request_fetches_fresh(self, app):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return feed_node()(request)

        with client_for(app, handler) as client:
            client.get(READING_PATH)
            client.get(READING_PATH)

        assert len(calls) == 6

    def test_process_time_header(self, app):
        with client_for(app, feed_node()) as client:
            response = client.get(READING_PATH)
        assert float(response.headers["X-Process-Time"]) >= 0

    def test_cors_allows_local_origin(self, app):
        with client_for(app, feed_node()) as client:
            response = client.get(READING_PATH, headers={"Origin": "http://localhost:3001"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:3001"


class TestHealthRoute:

    def test_liveness(self, app):
        with TestClient(app) as client:
            response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True
        assert response.json()["mode"] == "test"


class TestClientBundle:

    @pytest.fixture
    def bundle(self, tmp_path):
        (tmp_path / "static").mkdir()
        (tmp_path / "index.html").write_text("<html>app</html>")
        (tmp_path / "static" / "main.js").write_text("console.log('hi')")
        return tmp_path

    @pytest.fixture
    def production_app(self, settings, bundle):
        prod = settings.model_copy(update={"APP_ENV": "production", "STATIC_DIR": str(bundle)})
        return create_app(prod)

    def test_serves_index_and_assets(self, production_app):
        with client_for(production_app, feed_node()) as client:
            assert client.get("/").text == "<html>app</html>"
            assert client.get("/static/main.js").text == "console.log('hi')"
            assert client.get("/some/client/route").text == "<html>app</html>"

    def test_api_routes_are_not_shadowed(self, production_app):
        with client_for(production_app, feed_node()) as client:
            assert client.get(READING_PATH).json()["ok"] is True
            assert client.get("/api/unknown").status_code == 404

    def test_no_traversal_outside_bundle(self, production_app):
        with client_for(production_app, feed_node()) as client:
            response = client.get("/..%2F..%2Fetc%2Fpasswd")
        assert response.text == "<html>app</html>"

    def test_not_mounted_outside_production(self, app):
        with TestClient(app) as client:
            assert client.get("/").status_code == 404
