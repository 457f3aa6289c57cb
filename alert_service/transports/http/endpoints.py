"""HTTP Endpoints - Ruta de ingesta en vivo y administración de reglas.

Los handlers son síncronos: FastAPI los ejecuta en su threadpool, así la
ruta HTTP corre concurrente con el poller y los simuladores sobre el
mismo motor.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ...application import AlertingApplication
from ...core.domain.sample import TelemetrySample
from .schemas import (
    ManualAlertIn,
    ManualAlertResult,
    RuleOut,
    SpikeIn,
    SpikeResult,
    StatisticsOut,
    TelemetryIn,
    TelemetryOut,
    TelemetryResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["telemetry"])


def get_application(request: Request) -> AlertingApplication:
    return request.app.state.alerting


@router.post("/telemetry", response_model=TelemetryResult)
def submit_telemetry(
    payload: TelemetryIn,
    application: AlertingApplication = Depends(get_application),
) -> TelemetryResult:
    """Recibe una lectura y la evalúa con el motor de reglas.

    Una lectura fuera de rango físico no es un error HTTP: se responde
    ``status="rejected"`` con el motivo.
    """
    now = datetime.now(timezone.utc)
    sample = TelemetrySample(
        device_id=payload.device_id,
        temperature=payload.temperature,
        humidity=payload.humidity,
        observed_at=payload.timestamp or now,
    )

    reason = sample.validation_error()
    triggered = application.ingest_sample(sample)

    return TelemetryResult(
        status="rejected" if reason else "accepted",
        device_id=sample.device_id,
        temperature=sample.temperature,
        humidity=sample.humidity,
        triggered_rules=triggered,
        reason=reason,
        timestamp=now,
    )


@router.get("/telemetry", response_model=List[TelemetryOut])
def recent_telemetry(
    limit: int = Query(10),
    application: AlertingApplication = Depends(get_application),
) -> List[TelemetryOut]:
    limit = max(1, min(limit, 100))
    fetch = getattr(application.repository, "get_recent_telemetry", None)
    if fetch is None:
        return []

    try:
        samples = fetch(limit)
    except Exception:
        logger.exception("[HTTP] Failed to read recent telemetry")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error")

    return [
        TelemetryOut(
            device_id=s.device_id,
            temperature=s.temperature,
            humidity=s.humidity,
            observed_at=s.observed_at,
        )
        for s in samples
    ]


@router.post("/test/alert", response_model=ManualAlertResult)
def test_alert(
    reading: Optional[ManualAlertIn] = None,
    application: AlertingApplication = Depends(get_application),
) -> ManualAlertResult:
    """Envía la lectura directo al procesador de alertas (sin reglas)."""
    reading = reading or ManualAlertIn()
    notifications = application.processor.process_sample(
        reading.device_id, reading.temperature, reading.humidity
    )
    return ManualAlertResult(
        status="success",
        device_id=reading.device_id,
        temperature=reading.temperature,
        humidity=reading.humidity,
        notifications=notifications,
    )


@router.post("/simulation/{device_id}/spike", response_model=SpikeResult)
def simulate_spike(
    device_id: str,
    spike: Optional[SpikeIn] = None,
    application: AlertingApplication = Depends(get_application),
) -> SpikeResult:
    """Programa un salto en la próxima lectura del dispositivo simulado."""
    spike = spike or SpikeIn()
    try:
        application.simulate_spike(device_id, spike.temperature_delta, spike.humidity_delta)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Simulated device '{device_id}' not found"
        )
    return SpikeResult(
        status="scheduled",
        device_id=device_id,
        temperature_delta=spike.temperature_delta,
        humidity_delta=spike.humidity_delta,
    )


@router.get("/stats", response_model=StatisticsOut)
def statistics(application: AlertingApplication = Depends(get_application)) -> StatisticsOut:
    return StatisticsOut(**application.statistics())


@router.post("/stats/reset", status_code=status.HTTP_204_NO_CONTENT)
def reset_statistics(application: AlertingApplication = Depends(get_application)) -> None:
    application.reset_statistics()


@router.get("/rules", response_model=List[RuleOut])
def list_rules(application: AlertingApplication = Depends(get_application)) -> List[RuleOut]:
    rules = []
    for name in application.engine.get_rule_names():
        rule = application.engine.get_rule(name)
        if rule is None:  # eliminada entre las dos lecturas
            continue
        rules.append(
            RuleOut(
                name=rule.name,
                description=rule.description,
                priority=rule.priority,
                enabled=rule.enabled,
            )
        )
    return rules


@router.post("/rules/{name}/enable", response_model=RuleOut)
def enable_rule(name: str, application: AlertingApplication = Depends(get_application)) -> RuleOut:
    if not application.engine.enable_rule(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Rule '{name}' not found")
    return _rule_out(application, name)


@router.post("/rules/{name}/disable", response_model=RuleOut)
def disable_rule(name: str, application: AlertingApplication = Depends(get_application)) -> RuleOut:
    if not application.engine.disable_rule(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Rule '{name}' not found")
    return _rule_out(application, name)


@router.delete("/rules/{name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(name: str, application: AlertingApplication = Depends(get_application)) -> None:
    if not application.engine.remove_rule(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Rule '{name}' not found")


def _rule_out(application: AlertingApplication, name: str) -> RuleOut:
    rule = application.engine.get_rule(name)
    if rule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Rule '{name}' not found")
    return RuleOut(
        name=rule.name,
        description=rule.description,
        priority=rule.priority,
        enabled=rule.enabled,
    )
