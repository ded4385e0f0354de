"""
Edge Dispatcher HTTP API Tests

Tests covering:
- /query success, degraded and error responses
- Empty device id short-circuit
- /binding lookups and /health
- Application lifespan wiring from configuration
"""

from __future__ import annotations

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from edgedispatch.api import DEGRADED_HEADER, EMPTY_DEVICE_ID_MESSAGE
from edgedispatch.config import (
    DispatcherConfig,
    LoggingConfig,
    RegistryConfig,
    StoreConfig,
    get_development_config,
)
from edgedispatch.dispatch.engine import DispatchEngine
from edgedispatch.main import create_app
from edgedispatch.persistence.base import BindingStoreError
from edgedispatch.persistence.memory import InMemoryBindingStore
from edgedispatch.registry.static import StaticNodeRegistry


def _engine(nodes=("edge-0", "edge-1")):
    registry = StaticNodeRegistry(nodes)
    store = InMemoryBindingStore()
    return DispatchEngine(registry, store), registry, store


def _client(engine):
    return TestClient(create_app(get_development_config(), engine=engine))


class TestQueryEndpoint:
    """Test GET /query."""

    def test_returns_node_name_as_plain_text(self):
        engine, _, _ = _engine()
        with _client(engine) as client:
            response = client.get("/query", params={"id": "device-1"})

        assert response.status_code == 200
        assert response.text == "edge-0"
        assert response.headers["content-type"].startswith("text/plain")
        assert DEGRADED_HEADER.lower() not in response.headers

    def test_round_robin_across_requests(self):
        engine, _, _ = _engine(("edge-0", "edge-1", "edge-2"))
        with _client(engine) as client:
            names = [
                client.get("/query", params={"id": f"device-{i}"}).text
                for i in range(4)
            ]
        assert names == ["edge-0", "edge-1", "edge-2", "edge-0"]

    def test_empty_id_is_rejected_without_binding(self):
        engine, _, store = _engine()
        engine.dispatch = AsyncMock()
        with _client(engine) as client:
            missing = client.get("/query")
            empty = client.get("/query", params={"id": ""})

        for response in (missing, empty):
            assert response.status_code == 400
            assert response.text == EMPTY_DEVICE_ID_MESSAGE
        engine.dispatch.assert_not_awaited()
        assert store._bindings == {}

    def test_degraded_header(self):
        engine, registry, store = _engine(("edge-0",))
        registry.set_ready("edge-0", False)
        with _client(engine) as client:
            response = client.get("/query", params={"id": "device-1"})

        assert response.status_code == 200
        assert response.text == "edge-0"
        assert response.headers[DEGRADED_HEADER] == "true"

    def test_no_edge_nodes(self):
        engine, _, store = _engine(())
        with _client(engine) as client:
            response = client.get("/query", params={"id": "device-1"})

        assert response.status_code == 503
        assert store._bindings == {}

    def test_store_failure_is_internal_error(self):
        engine, _, store = _engine()
        store.put = AsyncMock(side_effect=BindingStoreError("commit", "disk full", "device-1"))
        with _client(engine) as client:
            response = client.get("/query", params={"id": "device-1"})

        assert response.status_code == 500
        assert "edge-0" not in response.text


class TestBindingEndpoint:
    """Test GET /binding."""

    def test_lookup_after_dispatch(self):
        engine, _, _ = _engine()
        with _client(engine) as client:
            client.get("/query", params={"id": "device-1"})
            response = client.get("/binding", params={"id": "device-1"})

        assert response.status_code == 200
        assert response.text == "edge-0"

    def test_unknown_device(self):
        engine, _, _ = _engine()
        with _client(engine) as client:
            assert client.get("/binding", params={"id": "nope"}).status_code == 404
            assert client.get("/binding").status_code == 400


class TestHealthEndpoint:

    def test_health_reports_directory(self):
        engine, _, _ = _engine()
        with _client(engine) as client:
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["directory"]["nodes"] == ["edge-0", "edge-1"]
        assert body["store"]["healthy"] is True


class TestAppLifespan:
    """Test engine construction from configuration."""

    def test_builds_engine_from_config(self, tmp_path):
        config = DispatcherConfig(
            registry=RegistryConfig(method="static", static_nodes=["edge-a"]),
            store=StoreConfig(data_dir=str(tmp_path)),
            logging=LoggingConfig(json_logs=False),
        )
        app = create_app(config)
        with TestClient(app) as client:
            assert client.get("/query", params={"id": "device-1"}).text == "edge-a"
            engine = app.state.engine

        assert isinstance(engine, DispatchEngine)
        assert (tmp_path / "bindings.db").exists()

    def test_bindings_survive_restart(self, tmp_path):
        config = DispatcherConfig(
            registry=RegistryConfig(method="static", static_nodes=["edge-a", "edge-b"]),
            store=StoreConfig(data_dir=str(tmp_path)),
        )
        with TestClient(create_app(config)) as client:
            client.get("/query", params={"id": "device-1"})

        with TestClient(create_app(config)) as client:
            response = client.get("/binding", params={"id": "device-1"})

        assert response.text == "edge-a"
