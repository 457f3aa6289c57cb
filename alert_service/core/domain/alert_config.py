"""Umbrales por suscriptor y tipos de alerta."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MetricKind(str, Enum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"


class Direction(str, Enum):
    ABOVE = "above"
    BELOW = "below"


class AlertKind(str, Enum):
    """Tipo de alerta. La deduplicación es por tipo, no por métrica."""

    TEMP_HIGH = "temp_high"
    TEMP_LOW = "temp_low"
    HUM_HIGH = "hum_high"
    HUM_LOW = "hum_low"

    @property
    def metric(self) -> MetricKind:
        if self in (AlertKind.TEMP_HIGH, AlertKind.TEMP_LOW):
            return MetricKind.TEMPERATURE
        return MetricKind.HUMIDITY

    @property
    def direction(self) -> Direction:
        if self in (AlertKind.TEMP_HIGH, AlertKind.HUM_HIGH):
            return Direction.ABOVE
        return Direction.BELOW


@dataclass(frozen=True)
class SubscriberAlertConfig:
    """Umbrales personales de un suscriptor.

    Convención: un umbral solo está "armado" si es > 0. Cero o negativo
    significa "sin configurar", aunque un umbral bajo cero tenga sentido
    físico para la temperatura.
    """

    user_id: int
    temp_high: float = 0.0
    temp_low: float = 0.0
    hum_high: float = 0.0
    hum_low: float = 0.0

    def has_any_armed(self) -> bool:
        return (
            self.temp_high > 0
            or self.temp_low > 0
            or self.hum_high > 0
            or self.hum_low > 0
        )

    def triggered_kinds(self, temperature: float, humidity: float) -> list[tuple[AlertKind, float, float]]:
        """Evalúa los cuatro umbrales armados.

        Returns:
            Lista de (kind, valor observado, umbral) que se disparan.
        """
        fired: list[tuple[AlertKind, float, float]] = []

        if self.temp_high > 0 and temperature > self.temp_high:
            fired.append((AlertKind.TEMP_HIGH, temperature, self.temp_high))
        if self.temp_low > 0 and temperature < self.temp_low:
            fired.append((AlertKind.TEMP_LOW, temperature, self.temp_low))
        if self.hum_high > 0 and humidity > self.hum_high:
            fired.append((AlertKind.HUM_HIGH, humidity, self.hum_high))
        if self.hum_low > 0 and humidity < self.hum_low:
            fired.append((AlertKind.HUM_LOW, humidity, self.hum_low))

        return fired
