"""Reglas por defecto del motor.

Los umbrales vienen de configuración; el motor no los conoce.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from ..domain.sample import TelemetrySample
from .rule import Rule

if TYPE_CHECKING:
    from ..alerts.processor import AlertProcessor

logger = logging.getLogger(__name__)

PRIORITY_VALIDATION = 100
PRIORITY_TEMPERATURE = 10
PRIORITY_HUMIDITY = 5


@dataclass(frozen=True)
class DefaultRuleThresholds:
    """Umbrales de las reglas globales del motor."""
    temp_high: float = 28.0
    temp_low: float = 15.0
    hum_high: float = 70.0
    hum_low: float = 30.0


def _forward_to_processor(sample: TelemetrySample, processor: "AlertProcessor") -> None:
    processor.process_sample(sample.device_id, sample.temperature, sample.humidity)


def _log_validation(sample: TelemetrySample, processor: "AlertProcessor") -> None:
    error = sample.validation_error()
    if error:
        logger.warning("[RULES] Invalid data from device=%s: %s", sample.device_id, error)
    else:
        logger.debug("[RULES] Data validation passed for device=%s", sample.device_id)


def create_data_validation_rule() -> Rule:
    """Siempre se dispara; solo loguea validez, nunca notifica."""
    return Rule(
        name="data_validation",
        description="Validate incoming telemetry data",
        condition=lambda sample, processor: True,
        action=_log_validation,
        priority=PRIORITY_VALIDATION,
    )


def create_temperature_high_rule(threshold: float) -> Rule:
    return Rule(
        name="temperature_high_alert",
        description=f"Temperature above {threshold:.1f}°C",
        condition=lambda sample, processor: sample.temperature > threshold,
        action=_forward_to_processor,
        priority=PRIORITY_TEMPERATURE,
    )


def create_temperature_low_rule(threshold: float) -> Rule:
    return Rule(
        name="temperature_low_alert",
        description=f"Temperature below {threshold:.1f}°C",
        condition=lambda sample, processor: sample.temperature < threshold,
        action=_forward_to_processor,
        priority=PRIORITY_TEMPERATURE,
    )


def create_humidity_high_rule(threshold: float) -> Rule:
    return Rule(
        name="humidity_high_alert",
        description=f"Humidity above {threshold:.1f}%",
        condition=lambda sample, processor: sample.humidity > threshold,
        action=_forward_to_processor,
        priority=PRIORITY_HUMIDITY,
    )


def create_humidity_low_rule(threshold: float) -> Rule:
    return Rule(
        name="humidity_low_alert",
        description=f"Humidity below {threshold:.1f}%",
        condition=lambda sample, processor: sample.humidity < threshold,
        action=_forward_to_processor,
        priority=PRIORITY_HUMIDITY,
    )


def build_default_rules(thresholds: DefaultRuleThresholds) -> List[Rule]:
    """Las cinco reglas por defecto, en orden de prioridad."""
    return [
        create_data_validation_rule(),
        create_temperature_high_rule(thresholds.temp_high),
        create_temperature_low_rule(thresholds.temp_low),
        create_humidity_high_rule(thresholds.hum_high),
        create_humidity_low_rule(thresholds.hum_low),
    ]
