"""
Edge Dispatcher Core

- NodeDirectory: edge node snapshot with refresh policy
- RoundRobinSelector: readiness-aware rotation over the snapshot
- DispatchEngine: selection plus durable device binding
"""

from edgedispatch.dispatch.directory import NodeDirectory
from edgedispatch.dispatch.engine import (
    DispatchEngine,
    DispatchError,
    InvalidDeviceIdError,
    NoEdgeNodeError,
)
from edgedispatch.dispatch.selector import RoundRobinSelector

__all__ = [
    "NodeDirectory",
    "RoundRobinSelector",
    "DispatchEngine",
    "DispatchError",
    "InvalidDeviceIdError",
    "NoEdgeNodeError",
]
