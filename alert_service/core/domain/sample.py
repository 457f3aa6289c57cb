"""Modelo de dominio para muestras de telemetría."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

# Rangos físicos aceptados
TEMPERATURE_RANGE = (-50.0, 100.0)
HUMIDITY_RANGE = (0.0, 100.0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TelemetrySample:
    """Lectura de temperatura/humedad de un dispositivo.

    Es el contrato único que producen todas las rutas de ingesta
    (HTTP, simulador, poller). Inmutable; el núcleo nunca la persiste.
    """

    device_id: str
    temperature: float
    humidity: float
    observed_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def now(cls, device_id: str, temperature: float, humidity: float) -> "TelemetrySample":
        """Crea una muestra con timestamp actual (UTC)."""
        return cls(
            device_id=device_id,
            temperature=float(temperature),
            humidity=float(humidity),
            observed_at=_utcnow(),
        )

    def validation_error(self) -> Optional[str]:
        """Retorna la primera restricción violada, o None si es válida."""
        if not self.device_id:
            return "device_id must not be empty"

        t_min, t_max = TEMPERATURE_RANGE
        if math.isnan(self.temperature) or not (t_min <= self.temperature <= t_max):
            return f"temperature {self.temperature} outside [{t_min}, {t_max}]"

        h_min, h_max = HUMIDITY_RANGE
        if math.isnan(self.humidity) or not (h_min <= self.humidity <= h_max):
            return f"humidity {self.humidity} outside [{h_min}, {h_max}]"

        return None

    def is_valid(self) -> bool:
        return self.validation_error() is None

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "observed_at": self.observed_at.isoformat(),
        }
