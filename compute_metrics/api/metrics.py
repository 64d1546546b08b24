"""Prometheus scrape endpoint"""
import logging
from fastapi import APIRouter, HTTPException, Request, Response

from compute_metrics.exceptions import EncodingError
from compute_metrics.observability.metrics import MetricsRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def get_metrics(request: Request) -> MetricsRegistry:
    """Registry owned by the running application."""
    return request.app.state.metrics


@router.get("/metrics")
async def metrics(request: Request):
    """Prometheus metrics endpoint.

    Exposes:
    - Allocated and spent compute units per worker for the current epoch
    - Current epoch number
    - Query duration histogram by worker and status
    """
    registry = get_metrics(request)
    try:
        body = registry.gather_metrics()
    except EncodingError as e:
        logger.exception(f"Failed to render metrics: {e}")
        raise HTTPException(status_code=500, detail="Failed to render metrics")

    return Response(body, media_type=registry.content_type)
