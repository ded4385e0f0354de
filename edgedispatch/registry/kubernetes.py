"""
Edge Dispatcher Kubernetes Registry

Node registry backed by the Kubernetes API server.  Configuration is loaded
in-cluster first and falls back to a kubeconfig file.  The official client is
synchronous, so every API call runs in the default executor to keep the event
loop free.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, TypeVar

import structlog
from kubernetes import client
from kubernetes import config as kube_config

from edgedispatch.config import EDGE_ROLE_LABEL, RegistryConfig
from edgedispatch.registry.base import NodeRegistry, RegistryError
from edgedispatch.types import NodeCondition

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def default_kubeconfig_path() -> str:
    """``~/.kube/config``, honouring ``USERPROFILE`` where ``HOME`` is unset."""
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or ""
    if not home:
        return ""
    return str(Path(home) / ".kube" / "config")


class KubernetesNodeRegistry(NodeRegistry):
    """
    Lists cluster nodes labelled with the edge role and reads their status.

    Args:
        api: A ``CoreV1Api`` instance.
        edge_label: Label key marking edge-capable nodes.
        request_timeout: Per-call timeout in seconds.
    """

    def __init__(
        self,
        api: Any,
        edge_label: str = EDGE_ROLE_LABEL,
        request_timeout: float = 10.0,
    ) -> None:
        self._api = api
        self._edge_label = edge_label
        self._request_timeout = request_timeout

    @classmethod
    def connect(cls, config: RegistryConfig) -> "KubernetesNodeRegistry":
        """Build a registry from in-cluster config or a kubeconfig file.

        Raises:
            RegistryError: If neither configuration source can be loaded.
        """
        configuration = client.Configuration()
        try:
            kube_config.load_incluster_config(client_configuration=configuration)
            source = "in_cluster"
        except kube_config.ConfigException:
            kubeconfig = config.kubeconfig or default_kubeconfig_path()
            try:
                kube_config.load_kube_config(
                    config_file=kubeconfig or None,
                    client_configuration=configuration,
                )
            except (kube_config.ConfigException, OSError) as exc:
                raise RegistryError("connect", str(exc)) from exc
            source = kubeconfig

        api = client.CoreV1Api(client.ApiClient(configuration))
        logger.info(
            "kubernetes_registry.connected",
            source=source,
            host=configuration.host,
            edge_label=config.edge_label,
        )
        return cls(
            api,
            edge_label=config.edge_label,
            request_timeout=config.request_timeout_seconds,
        )

    async def _call(self, operation: str, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except Exception as exc:
            raise RegistryError(operation, str(exc)) from exc

    def _fetch_edge_names(self) -> Tuple[int, List[str]]:
        node_list = self._api.list_node(_request_timeout=self._request_timeout)
        names: List[str] = []
        for node in node_list.items:
            labels = node.metadata.labels or {}
            if self._edge_label in labels:
                names.append(node.metadata.name)
        return len(node_list.items), names

    def _fetch_last_condition(self, name: str) -> Optional[NodeCondition]:
        node = self._api.read_node(name, _request_timeout=self._request_timeout)
        conditions = (node.status.conditions if node.status else None) or []
        if not conditions:
            return None
        latest = conditions[-1]
        return NodeCondition(
            type=latest.type,
            status=latest.status,
            reason=latest.reason,
        )

    async def list_edge_nodes(self) -> List[str]:
        # Malformed node objects surface as RegistryError like API failures
        total, names = await self._call("list", self._fetch_edge_names)
        logger.debug("kubernetes_registry.listed", total=total, edge=len(names))
        return names

    async def get_node_readiness(self, name: str) -> Optional[NodeCondition]:
        return await self._call("get", lambda: self._fetch_last_condition(name))

    async def close(self) -> None:
        api_client = getattr(self._api, "api_client", None)
        if api_client is not None:
            api_client.close()
