"""Esquemas Pydantic para la ruta de ingesta HTTP.

Los rangos físicos NO se validan aquí: es responsabilidad del motor
(una muestra fuera de rango se rechaza sin error HTTP).
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class TelemetryIn(BaseModel):
    device_id: str = Field(..., description="ID del dispositivo")
    temperature: float
    humidity: float
    timestamp: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "device_id": "d1",
                "temperature": 35.0,
                "humidity": 50.0,
            }
        }


class TelemetryResult(BaseModel):
    status: str  # accepted | rejected
    device_id: str
    temperature: float
    humidity: float
    triggered_rules: List[str] = Field(default_factory=list)
    reason: Optional[str] = None
    timestamp: datetime


class ManualAlertIn(BaseModel):
    device_id: str = "test_device"
    temperature: float = 35.0
    humidity: float = 80.0


class ManualAlertResult(BaseModel):
    status: str
    device_id: str
    temperature: float
    humidity: float
    notifications: int


class TelemetryOut(BaseModel):
    device_id: str
    temperature: float
    humidity: float
    observed_at: datetime


class RuleOut(BaseModel):
    name: str
    description: str
    priority: int
    enabled: bool


class StatisticsOut(BaseModel):
    engine: Dict
    alerts: Dict
    poller: Dict
    dedup: Dict


class SpikeIn(BaseModel):
    temperature_delta: float = 20.0
    humidity_delta: float = 0.0


class SpikeResult(BaseModel):
    status: str
    device_id: str
    temperature_delta: float
    humidity_delta: float
