"""
Edge Dispatcher Node Registries

Cluster membership sources:
- Kubernetes API server (production)
- Static in-process list (development / tests)
"""

from __future__ import annotations

from edgedispatch.config import RegistryConfig
from edgedispatch.registry.base import NodeRegistry, RegistryError
from edgedispatch.registry.static import StaticNodeRegistry


def create_registry(config: RegistryConfig) -> NodeRegistry:
    """Create the registry selected by ``config.method``."""
    if config.method == "static":
        return StaticNodeRegistry(config.static_nodes)

    from edgedispatch.registry.kubernetes import KubernetesNodeRegistry
    return KubernetesNodeRegistry.connect(config)


__all__ = [
    "NodeRegistry",
    "RegistryError",
    "StaticNodeRegistry",
    "create_registry",
]
