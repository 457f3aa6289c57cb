from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from common.config import Settings, get_settings

from .application import AlertingApplication
from .endpoints.health import router as health_router
from .transports.http.endpoints import router as telemetry_router


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    application: Optional[AlertingApplication] = None,
) -> FastAPI:
    """Crea la app FastAPI.

    La aplicación de alertas se construye una vez y vive en ``app.state``.
    El lifespan la arranca y la detiene (poller → simuladores); el host
    (uvicorn) traduce SIGINT/SIGTERM en el fin del lifespan.
    """
    if application is None:
        settings = settings or get_settings()
        configure_logging(settings.log_level)
        application = AlertingApplication(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        application.start()
        try:
            yield
        finally:
            application.shutdown()

    app = FastAPI(title="IoT Alerting Service", version="1.0.0", lifespan=lifespan)
    app.state.alerting = application
    app.include_router(health_router)
    app.include_router(telemetry_router)
    return app
