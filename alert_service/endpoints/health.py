"""Health, readiness and metrics endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..application import AlertingApplication
from ..transports.http.endpoints import get_application

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: siempre ok mientras el proceso corre."""
    return {"status": "ok"}


@router.get("/ready")
def ready(application: AlertingApplication = Depends(get_application)):
    """Readiness probe: la aplicación arrancó y el poller corre si debe.

    Un enlace remoto caído no bloquea el readiness: el poller lo tolera.
    """
    if not application.is_running:
        raise HTTPException(status_code=503, detail="not ready")

    try:
        remote = application.repository.is_remote_connected()
    except Exception:
        logger.exception("[READY] Remote link check failed")
        remote = False

    return {
        "status": "ready",
        "poller_running": application.poller.is_running,
        "remote_connected": remote,
    }


@router.get("/metrics")
def metrics():
    """Métricas Prometheus del proceso."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
