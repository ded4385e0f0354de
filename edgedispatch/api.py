"""
Edge Dispatcher HTTP API

Thin request handlers in front of the dispatch engine:
- ``GET /query?id=<device>``: assign the device to an edge node
- ``GET /binding?id=<device>``: read the current binding
- ``GET /health``: directory, pointer and store status
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from edgedispatch.dispatch.engine import NoEdgeNodeError
from edgedispatch.persistence.base import BindingStoreError

if TYPE_CHECKING:
    from edgedispatch.dispatch.engine import DispatchEngine

logger = structlog.get_logger(__name__)

EMPTY_DEVICE_ID_MESSAGE = "Device ID can not be empty"
DEGRADED_HEADER = "X-Dispatch-Degraded"


def create_dispatch_router(engine: "DispatchEngine") -> APIRouter:
    """
    Create the FastAPI router for device dispatch.

    Args:
        engine: The process-wide dispatch engine.

    Returns:
        APIRouter with the dispatch endpoints.
    """
    router = APIRouter(tags=["dispatch"])

    @router.get("/query", response_class=PlainTextResponse)
    async def query_node(device_id: str = Query(default="", alias="id")) -> PlainTextResponse:
        """Assign a device to an edge node and return the node name."""
        if not device_id:
            return PlainTextResponse(EMPTY_DEVICE_ID_MESSAGE, status_code=400)

        try:
            result = await engine.dispatch(device_id)
        except NoEdgeNodeError as exc:
            return PlainTextResponse(str(exc), status_code=503)
        except BindingStoreError as exc:
            logger.error("api.binding_not_persisted", device_id=device_id, error=str(exc))
            return PlainTextResponse("Failed to persist device binding", status_code=500)

        headers = {DEGRADED_HEADER: "true"} if result.degraded else None
        return PlainTextResponse(result.node_name, headers=headers)

    @router.get("/binding", response_class=PlainTextResponse)
    async def get_binding(device_id: str = Query(default="", alias="id")) -> PlainTextResponse:
        """Return the node currently bound to a device."""
        if not device_id:
            return PlainTextResponse(EMPTY_DEVICE_ID_MESSAGE, status_code=400)

        try:
            node_name = await engine.lookup(device_id)
        except BindingStoreError as exc:
            logger.error("api.binding_lookup_failed", device_id=device_id, error=str(exc))
            return PlainTextResponse("Failed to read device binding", status_code=500)

        if node_name is None:
            return PlainTextResponse("No binding for device", status_code=404)
        return PlainTextResponse(node_name)

    @router.get("/health")
    async def health_check() -> JSONResponse:
        """Dispatcher health check endpoint."""
        status: Dict[str, Any] = await engine.get_status()
        code = 200 if status["store"]["healthy"] else 503
        return JSONResponse(status, status_code=code)

    return router
