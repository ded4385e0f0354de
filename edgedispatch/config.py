"""
Edge Dispatcher Configuration

Configuration for the registry adapter, node directory refresh policy,
binding store backends, HTTP server and logging, using Pydantic for
validation and environment variable support.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

EDGE_ROLE_LABEL = "node-role.kubernetes.io/edge"
DEFAULT_COLLECTION = "DeviceNode"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RegistryConfig(BaseModel):
    """Node registry configuration."""
    method: Literal["kubernetes", "static"] = "kubernetes"
    edge_label: str = Field(default=EDGE_ROLE_LABEL, min_length=1, description="Edge-role node label")
    kubeconfig: Optional[str] = Field(default=None, description="Kubeconfig path, defaults to ~/.kube/config")
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    static_nodes: List[str] = Field(default_factory=list, description="Node names for the static registry")


class DirectoryConfig(BaseModel):
    """Node directory refresh policy.

    ``refresh_interval_seconds == 0`` refreshes on every dispatch.
    """
    refresh_interval_seconds: float = Field(default=0.0, ge=0)
    background_refresh: bool = False

    @field_validator("background_refresh")
    @classmethod
    def validate_background_refresh(cls, v: bool, info) -> bool:
        interval = info.data.get("refresh_interval_seconds", 0.0)
        if v and interval <= 0:
            raise ValueError("background_refresh requires refresh_interval_seconds > 0")
        return v


class StoreConfig(BaseModel):
    """Binding store configuration."""
    backend: Literal["sqlite", "memory", "redis"] = "sqlite"
    data_dir: str = Field(default="/tmp/edgedispatch")
    file_name: str = Field(default="bindings.db", min_length=1)
    collection: str = Field(default=DEFAULT_COLLECTION, description="Binding table / hash name")

    # SQLite
    journal_mode: Literal["WAL", "DELETE", "TRUNCATE"] = "WAL"
    synchronous: Literal["FULL", "EXTRA", "NORMAL"] = "FULL"
    busy_timeout_ms: int = Field(default=5000, ge=0)

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "edgedispatch:"

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        if not _IDENTIFIER.match(v):
            raise ValueError("collection must be a plain identifier")
        return v

    @property
    def path(self) -> Path:
        return Path(self.data_dir) / self.file_name


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=6442, ge=1, le=65535, description="HTTP port")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_logs: bool = True


class DispatcherConfig(BaseModel):
    """
    Master configuration for the edge dispatcher.

    All sub-configurations are accessible via dot notation.
    """
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "DispatcherConfig":
        """Create configuration from ``EDGEDISPATCH_*`` environment variables."""
        config = cls()

        # Registry
        if method := os.environ.get("EDGEDISPATCH_REGISTRY"):
            config.registry.method = method.lower()
        if label := os.environ.get("EDGEDISPATCH_EDGE_LABEL"):
            config.registry.edge_label = label
        if kubeconfig := os.environ.get("EDGEDISPATCH_KUBECONFIG"):
            config.registry.kubeconfig = kubeconfig
        if nodes := os.environ.get("EDGEDISPATCH_STATIC_NODES"):
            config.registry.static_nodes = [n.strip() for n in nodes.split(",") if n.strip()]

        # Directory
        if interval := os.environ.get("EDGEDISPATCH_REFRESH_INTERVAL"):
            config.directory.refresh_interval_seconds = float(interval)
        if os.environ.get("EDGEDISPATCH_BACKGROUND_REFRESH", "").lower() == "true":
            config.directory.background_refresh = True

        # Store
        if backend := os.environ.get("EDGEDISPATCH_STORE_BACKEND"):
            config.store.backend = backend.lower()
        if data_dir := os.environ.get("EDGEDISPATCH_DATA_DIR"):
            config.store.data_dir = data_dir
        if redis_url := os.environ.get("EDGEDISPATCH_REDIS_URL"):
            config.store.redis_url = redis_url

        # Server
        if host := os.environ.get("EDGEDISPATCH_HOST"):
            config.server.host = host
        if port := os.environ.get("EDGEDISPATCH_PORT"):
            config.server.port = int(port)

        # Logging
        if level := os.environ.get("EDGEDISPATCH_LOG_LEVEL"):
            config.logging.level = level.upper()

        # Assignments above bypass field validation
        return cls.model_validate(config.model_dump())


def get_default_config() -> DispatcherConfig:
    """Get default dispatcher configuration."""
    return DispatcherConfig()


def get_development_config() -> DispatcherConfig:
    """Get a local configuration with a static registry and in-memory store."""
    return DispatcherConfig(
        registry=RegistryConfig(
            method="static",
            static_nodes=["edge-0", "edge-1", "edge-2"],
        ),
        store=StoreConfig(backend="memory"),
        logging=LoggingConfig(level="DEBUG", json_logs=False),
    )
