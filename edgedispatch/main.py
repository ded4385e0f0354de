"""
Edge Dispatcher - Main entry point

Builds the FastAPI application around a single dispatch engine.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI

from edgedispatch.api import create_dispatch_router
from edgedispatch.config import DispatcherConfig
from edgedispatch.dispatch.engine import DispatchEngine
from edgedispatch.persistence import create_binding_store
from edgedispatch.registry import create_registry


# Configure structured logging
def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(__name__)


def create_app(
    config: Optional[DispatcherConfig] = None,
    engine: Optional[DispatchEngine] = None,
) -> FastAPI:
    """
    Create and configure the dispatcher FastAPI application.

    Args:
        config: Optional configuration override, read from the environment
            when omitted.
        engine: Pre-built engine, mainly for tests.  Built from ``config``
            during startup when omitted.

    Returns:
        Configured FastAPI application
    """
    config = config or DispatcherConfig.from_env()
    setup_logging(config.logging.level, config.logging.json_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Starting edge dispatcher", registry=config.registry.method)

        # Registry or store failures here stop the server
        dispatch_engine = engine
        if dispatch_engine is None:
            dispatch_engine = DispatchEngine(
                registry=create_registry(config.registry),
                store=create_binding_store(config.store),
                directory_config=config.directory,
            )
        await dispatch_engine.start()

        app.state.engine = dispatch_engine
        app.include_router(create_dispatch_router(dispatch_engine))
        logger.info("Edge dispatcher ready", edge_nodes=len(dispatch_engine.directory))

        yield

        logger.info("Shutting down edge dispatcher")
        await dispatch_engine.stop()

    return FastAPI(
        title="Edge Dispatcher",
        description="Assigns devices to ready Kubernetes edge nodes in round-robin order.",
        version="1.0.0",
        lifespan=lifespan,
    )


def run_server(config: Optional[DispatcherConfig] = None) -> None:
    """
    Run the dispatcher server.

    Args:
        config: Optional configuration override
    """
    config = config or DispatcherConfig.from_env()
    app = create_app(config)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    run_server()
