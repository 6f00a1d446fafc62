"""
Health check endpoint.

GET /health reports MongoDB and RabbitMQ:
- MongoDB unreachable: "unhealthy" (503); nothing works without the store.
- RabbitMQ disconnected or not configured: "degraded" (200); notifications
  are still delivered by direct send.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


async def _mongo_status(request: Request) -> str:
    try:
        await request.app.state.db.client.admin.command("ping")
    except Exception as e:
        log.error("health_mongodb_failed", error=str(e), error_type=type(e).__name__)
        return "error"
    return "ok"


def _rabbitmq_status(request: Request) -> str:
    rabbitmq = getattr(request.app.state, "rabbitmq", None)
    if rabbitmq is None:
        return "not_configured"
    return "ok" if rabbitmq.is_connected else "error"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    checks = {
        "mongodb": await _mongo_status(request),
        "rabbitmq": _rabbitmq_status(request),
    }

    if checks["mongodb"] != "ok":
        overall = "unhealthy"
    elif checks["rabbitmq"] != "ok":
        overall = "degraded"
    else:
        overall = "healthy"

    body = HealthResponse(status=overall, checks=checks)
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=body.model_dump(),
    )
