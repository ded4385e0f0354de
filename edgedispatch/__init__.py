"""
Edge Dispatcher

Assigns device requests to edge-capable Kubernetes nodes and remembers the
assignment. Provides:

- **Node Directory**: edge-labelled node list refreshed from the registry
- **Round-Robin Selection**: shared rotation pointer, skips nodes that are
  not ready, bounded by one full rotation
- **Binding Store**: durable device -> node mapping written in a single
  transaction per dispatch (SQLite, Redis or in-memory)

Architecture:
    One DispatchEngine per process owns the directory snapshot, the rotation
    pointer and the binding store. The HTTP layer extracts the device id and
    forwards it to the engine.
"""

from edgedispatch.config import (
    DispatcherConfig,
    DirectoryConfig,
    LoggingConfig,
    RegistryConfig,
    ServerConfig,
    StoreConfig,
    get_default_config,
    get_development_config,
)
from edgedispatch.dispatch import (
    DispatchEngine,
    DispatchError,
    InvalidDeviceIdError,
    NoEdgeNodeError,
    NodeDirectory,
    RoundRobinSelector,
)
from edgedispatch.persistence import BindingStore, BindingStoreError
from edgedispatch.registry import NodeRegistry, RegistryError
from edgedispatch.types import DispatchResult, NodeCondition, SelectionResult

__all__ = [
    # Configuration
    "DispatcherConfig",
    "DirectoryConfig",
    "LoggingConfig",
    "RegistryConfig",
    "ServerConfig",
    "StoreConfig",
    "get_default_config",
    "get_development_config",
    # Engine
    "DispatchEngine",
    "DispatchError",
    "InvalidDeviceIdError",
    "NoEdgeNodeError",
    "NodeDirectory",
    "RoundRobinSelector",
    # Collaborators
    "BindingStore",
    "BindingStoreError",
    "NodeRegistry",
    "RegistryError",
    # Types
    "DispatchResult",
    "NodeCondition",
    "SelectionResult",
]
