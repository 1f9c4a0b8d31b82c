"""Health check endpoint."""

from typing import Any

from fastapi import APIRouter, Response

from claudish import __version__
from claudish.api.dependencies import ContainerDep
from claudish.core.logging import get_logger


router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health")
async def health(response: Response, container: ContainerDep) -> dict[str, Any]:
    """Service status with queue counters and session token usage."""
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    logger.debug("health_check_request")
    return {
        "status": "pass",
        "version": __version__,
        "queues": [stats.model_dump() for stats in container.queue_stats()],
        "usage": [
            snapshot.model_dump(mode="json")
            for snapshot in container.get_usage_registry().snapshots()
        ],
    }
