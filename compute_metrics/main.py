"""Compute Metrics Service - FastAPI application exposing the metrics registry"""
import logging
import os
import time
from datetime import datetime
from contextlib import asynccontextmanager
from typing import List, Optional
from fastapi import FastAPI

from compute_metrics import __version__
from compute_metrics.api import metrics
from compute_metrics.observability.metrics import MetricsRegistry
from compute_metrics.schemas import HealthResponse

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Service configuration
METRICS_NAMESPACE = os.getenv("METRICS_NAMESPACE", "")
WORKER_IDS = os.getenv("WORKER_IDS", "")


def parse_worker_ids(raw: str) -> List[str]:
    """Split a comma-separated worker list, dropping blanks."""
    return [w.strip() for w in raw.split(",") if w.strip()]


def create_app(registry: Optional[MetricsRegistry] = None, worker_ids: Optional[List[str]] = None) -> FastAPI:
    """Build the application around a registry instance.

    Args:
        registry: Registry to expose (creates one from METRICS_NAMESPACE if not provided)
        worker_ids: Workers to pre-register on startup (defaults to WORKER_IDS)
    """
    if registry is None:
        registry = MetricsRegistry(namespace=METRICS_NAMESPACE)
    if worker_ids is None:
        worker_ids = parse_worker_ids(WORKER_IDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(f"Starting Compute Metrics v{__version__}")

        if worker_ids:
            app.state.metrics.init_workers(worker_ids)
            logger.info(f"Registered {len(worker_ids)} workers: {', '.join(worker_ids)}")

        yield

        logger.info("Shutting down Compute Metrics")

    app = FastAPI(
        title="Compute Metrics",
        description="Per-worker compute unit and query duration metrics",
        version=__version__,
        lifespan=lifespan
    )
    app.state.metrics = registry

    app.include_router(metrics.router, tags=["Metrics"])

    started_at = time.time()

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Liveness check with version and uptime."""
        return HealthResponse(
            status="ok",
            version=__version__,
            uptime_seconds=int(time.time() - started_at),
            now=datetime.utcnow()
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
