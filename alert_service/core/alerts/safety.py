"""Red de seguridad global: valores extremos independientes de suscriptores.

Solo loguea; no genera notificaciones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalSafetyLimits:
    temp_max: float = 40.0
    temp_min: float = 0.0
    hum_max: float = 90.0
    hum_min: float = 10.0


def check_global_limits(
    device_id: str,
    temperature: float,
    humidity: float,
    limits: GlobalSafetyLimits = GlobalSafetyLimits(),
) -> List[str]:
    """Detecta valores extremos.

    Returns:
        Lista de violaciones (vacía si todo está en rango).
    """
    violations: List[str] = []

    if temperature > limits.temp_max:
        violations.append("temperature_very_high")
        logger.critical(
            "[SAFETY] Very high temperature device=%s value=%.1f limit=%.1f",
            device_id, temperature, limits.temp_max,
        )

    if temperature < limits.temp_min:
        violations.append("temperature_very_low")
        logger.critical(
            "[SAFETY] Very low temperature device=%s value=%.1f limit=%.1f",
            device_id, temperature, limits.temp_min,
        )

    if humidity > limits.hum_max or humidity < limits.hum_min:
        violations.append("humidity_extreme")
        logger.warning(
            "[SAFETY] Extreme humidity device=%s value=%.1f range=[%.1f, %.1f]",
            device_id, humidity, limits.hum_min, limits.hum_max,
        )

    return violations
