"""
Edge Dispatcher Registry Tests

Tests covering:
- Static registry behaviour
- Kubernetes registry label filtering and condition parsing
- Error translation into RegistryError
- Registry factory
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from edgedispatch.config import EDGE_ROLE_LABEL, RegistryConfig
from edgedispatch.dispatch.directory import NodeDirectory
from edgedispatch.registry import StaticNodeRegistry, create_registry
from edgedispatch.registry.base import RegistryError
from edgedispatch.registry.kubernetes import (
    KubernetesNodeRegistry,
    default_kubeconfig_path,
)


def _node(name, labels=None, conditions=None):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name, labels=labels),
        status=SimpleNamespace(conditions=conditions),
    )


def _condition(type_, status="True", reason=None):
    return SimpleNamespace(type=type_, status=status, reason=reason)


# =============================================================================
# Static Registry Tests
# =============================================================================


class TestStaticNodeRegistry:
    """Test the in-process registry."""

    @pytest.mark.asyncio
    async def test_lists_nodes_in_insertion_order(self):
        registry = StaticNodeRegistry(["b", "a", "b"])
        assert await registry.list_edge_nodes() == ["b", "a"]

    @pytest.mark.asyncio
    async def test_readiness_toggle(self):
        registry = StaticNodeRegistry(["a"])
        assert (await registry.get_node_readiness("a")).is_ready

        registry.set_ready("a", False)
        condition = await registry.get_node_readiness("a")
        assert condition.type == "Ready"
        assert not condition.is_ready

    @pytest.mark.asyncio
    async def test_unknown_node_raises(self):
        registry = StaticNodeRegistry(["a"])
        with pytest.raises(RegistryError):
            await registry.get_node_readiness("missing")
        with pytest.raises(KeyError):
            registry.set_ready("missing", True)

    @pytest.mark.asyncio
    async def test_unavailable_registry(self):
        registry = StaticNodeRegistry(["a"])
        registry.set_available(False)
        with pytest.raises(RegistryError):
            await registry.list_edge_nodes()
        with pytest.raises(RegistryError):
            await registry.get_node_readiness("a")

    @pytest.mark.asyncio
    async def test_remove_node(self):
        registry = StaticNodeRegistry(["a", "b"])
        registry.remove_node("a")
        registry.remove_node("not-there")
        assert await registry.list_edge_nodes() == ["b"]


# =============================================================================
# Kubernetes Registry Tests
# =============================================================================


class TestKubernetesNodeRegistry:
    """Test the Kubernetes adapter against a mocked CoreV1Api."""

    @pytest.mark.asyncio
    async def test_filters_by_edge_label(self):
        api = MagicMock()
        api.list_node.return_value = SimpleNamespace(items=[
            _node("master", labels={"node-role.kubernetes.io/master": ""}),
            _node("edge-a", labels={EDGE_ROLE_LABEL: ""}),
            _node("worker", labels=None),
            _node("edge-b", labels={EDGE_ROLE_LABEL: "true", "zone": "x"}),
        ])
        registry = KubernetesNodeRegistry(api, request_timeout=3.0)

        assert await registry.list_edge_nodes() == ["edge-a", "edge-b"]
        api.list_node.assert_called_once_with(_request_timeout=3.0)

    @pytest.mark.asyncio
    async def test_custom_label(self):
        api = MagicMock()
        api.list_node.return_value = SimpleNamespace(items=[
            _node("edge-a", labels={EDGE_ROLE_LABEL: ""}),
            _node("gw-1", labels={"example.com/gateway": ""}),
        ])
        registry = KubernetesNodeRegistry(api, edge_label="example.com/gateway")

        assert await registry.list_edge_nodes() == ["gw-1"]

    @pytest.mark.asyncio
    async def test_readiness_uses_last_condition(self):
        api = MagicMock()
        api.read_node.return_value = _node("edge-a", conditions=[
            _condition("MemoryPressure", "False"),
            _condition("DiskPressure", "False"),
            _condition("Ready", "True", "KubeletReady"),
        ])
        registry = KubernetesNodeRegistry(api)

        condition = await registry.get_node_readiness("edge-a")

        assert condition.type == "Ready"
        assert condition.reason == "KubeletReady"
        assert condition.is_ready
        api.read_node.assert_called_once_with("edge-a", _request_timeout=10.0)

    @pytest.mark.asyncio
    async def test_not_ready_condition(self):
        api = MagicMock()
        api.read_node.return_value = _node("edge-a", conditions=[
            _condition("Ready", "Unknown", "NodeStatusUnknown"),
        ])
        registry = KubernetesNodeRegistry(api)

        condition = await registry.get_node_readiness("edge-a")
        assert not condition.is_ready

    @pytest.mark.asyncio
    async def test_no_conditions(self):
        api = MagicMock()
        api.read_node.return_value = _node("edge-a", conditions=None)
        registry = KubernetesNodeRegistry(api)

        assert await registry.get_node_readiness("edge-a") is None

    @pytest.mark.asyncio
    async def test_api_errors_become_registry_errors(self):
        api = MagicMock()
        api.list_node.side_effect = ConnectionError("connection refused")
        api.read_node.side_effect = RuntimeError("404 Not Found")
        registry = KubernetesNodeRegistry(api)

        with pytest.raises(RegistryError) as list_exc:
            await registry.list_edge_nodes()
        assert list_exc.value.operation == "list"

        with pytest.raises(RegistryError) as get_exc:
            await registry.get_node_readiness("edge-a")
        assert get_exc.value.operation == "get"

    @pytest.mark.asyncio
    async def test_malformed_node_becomes_registry_error(self):
        api = MagicMock()
        api.list_node.return_value = SimpleNamespace(items=[
            _node("edge-a", labels={EDGE_ROLE_LABEL: ""}),
            SimpleNamespace(metadata=None, status=None),
        ])
        api.read_node.return_value = SimpleNamespace(metadata=None)
        registry = KubernetesNodeRegistry(api)

        with pytest.raises(RegistryError) as list_exc:
            await registry.list_edge_nodes()
        assert list_exc.value.operation == "list"

        with pytest.raises(RegistryError):
            await registry.get_node_readiness("edge-a")

    @pytest.mark.asyncio
    async def test_directory_keeps_nodes_when_listing_is_malformed(self):
        api = MagicMock()
        api.list_node.return_value = SimpleNamespace(items=[
            _node("edge-a", labels={EDGE_ROLE_LABEL: ""}),
        ])
        directory = NodeDirectory(KubernetesNodeRegistry(api))
        assert await directory.refresh() == 1

        api.list_node.return_value = SimpleNamespace(items=[
            SimpleNamespace(metadata=None),
        ])

        assert await directory.refresh() == 1
        assert directory.nodes == ("edge-a",)
        assert directory.last_error is not None

    @pytest.mark.asyncio
    async def test_close_releases_api_client(self):
        api = MagicMock()
        registry = KubernetesNodeRegistry(api)
        await registry.close()
        api.api_client.close.assert_called_once()

    def test_connect_prefers_in_cluster(self):
        with patch("edgedispatch.registry.kubernetes.kube_config") as kube_config:
            kube_config.ConfigException = type("ConfigException", (Exception,), {})
            registry = KubernetesNodeRegistry.connect(RegistryConfig())

        kube_config.load_incluster_config.assert_called_once()
        kube_config.load_kube_config.assert_not_called()
        assert isinstance(registry, KubernetesNodeRegistry)

    def test_connect_falls_back_to_kubeconfig(self):
        with patch("edgedispatch.registry.kubernetes.kube_config") as kube_config:
            kube_config.ConfigException = type("ConfigException", (Exception,), {})
            kube_config.load_incluster_config.side_effect = kube_config.ConfigException("not in cluster")
            KubernetesNodeRegistry.connect(RegistryConfig(kubeconfig="/etc/kube/admin.conf"))

        _, kwargs = kube_config.load_kube_config.call_args
        assert kwargs["config_file"] == "/etc/kube/admin.conf"

    def test_connect_failure_raises(self):
        with patch("edgedispatch.registry.kubernetes.kube_config") as kube_config:
            kube_config.ConfigException = type("ConfigException", (Exception,), {})
            kube_config.load_incluster_config.side_effect = kube_config.ConfigException("not in cluster")
            kube_config.load_kube_config.side_effect = kube_config.ConfigException("no kubeconfig")

            with pytest.raises(RegistryError) as exc:
                KubernetesNodeRegistry.connect(RegistryConfig())
        assert exc.value.operation == "connect"

    def test_default_kubeconfig_path(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/ops")
        assert default_kubeconfig_path() == "/home/ops/.kube/config"

        monkeypatch.delenv("HOME")
        monkeypatch.setenv("USERPROFILE", "C:/Users/ops")
        assert default_kubeconfig_path().endswith(".kube/config")

        monkeypatch.delenv("USERPROFILE")
        assert default_kubeconfig_path() == ""


# =============================================================================
# Factory Tests
# =============================================================================


class TestCreateRegistry:

    def test_static(self):
        registry = create_registry(RegistryConfig(method="static", static_nodes=["a"]))
        assert isinstance(registry, StaticNodeRegistry)

    def test_kubernetes(self):
        with patch.object(KubernetesNodeRegistry, "connect") as connect:
            create_registry(RegistryConfig())
        connect.assert_called_once()
