"""Estadísticas de procesamiento.

Contadores monótonos; solo vuelven a cero con ``reset()``. Los dueños
(engine, processor, poller) los protegen con su propio lock y entregan
copias vía ``snapshot()``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EngineStatistics:
    """Estadísticas del motor de reglas."""

    total_processed: int = 0
    rules_triggered: int = 0
    rule_trigger_count: Dict[str, int] = field(default_factory=dict)
    started_at: datetime = field(default_factory=_utcnow)

    def record_trigger(self, rule_name: str) -> None:
        self.rules_triggered += 1
        self.rule_trigger_count[rule_name] = self.rule_trigger_count.get(rule_name, 0) + 1

    def snapshot(self) -> "EngineStatistics":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "total_processed": self.total_processed,
            "rules_triggered": self.rules_triggered,
            "rule_trigger_count": dict(self.rule_trigger_count),
            "started_at": self.started_at.isoformat(),
        }

    def reset(self):
        """Reinicia estadísticas."""
        self.total_processed = 0
        self.rules_triggered = 0
        self.rule_trigger_count = {}
        self.started_at = _utcnow()


@dataclass
class AlertStatistics:
    """Estadísticas del procesador de alertas."""

    total_alerts: int = 0
    temperature_alerts: int = 0
    humidity_alerts: int = 0
    users_notified: int = 0
    alerts_suppressed: int = 0
    started_at: datetime = field(default_factory=_utcnow)

    def __str__(self) -> str:
        return (
            f"AlertStatistics: total={self.total_alerts} "
            f"temperature={self.temperature_alerts} humidity={self.humidity_alerts} "
            f"suppressed={self.alerts_suppressed}"
        )

    def snapshot(self) -> "AlertStatistics":
        return copy.copy(self)

    def to_dict(self) -> dict:
        return {
            "total_alerts": self.total_alerts,
            "temperature_alerts": self.temperature_alerts,
            "humidity_alerts": self.humidity_alerts,
            "users_notified": self.users_notified,
            "alerts_suppressed": self.alerts_suppressed,
            "started_at": self.started_at.isoformat(),
        }

    def reset(self):
        """Reinicia estadísticas."""
        self.total_alerts = 0
        self.temperature_alerts = 0
        self.humidity_alerts = 0
        self.users_notified = 0
        self.alerts_suppressed = 0
        self.started_at = _utcnow()


@dataclass
class PollerStatistics:
    """Estadísticas del poller."""

    cycles: int = 0
    failed_cycles: int = 0
    devices_checked: int = 0
    last_cycle_at: Optional[float] = None

    def snapshot(self) -> "PollerStatistics":
        return copy.copy(self)

    def to_dict(self) -> dict:
        return {
            "cycles": self.cycles,
            "failed_cycles": self.failed_cycles,
            "devices_checked": self.devices_checked,
            "last_cycle_at": self.last_cycle_at,
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        total = self.cycles + self.failed_cycles
        if total == 0:
            return 1.0
        return self.cycles / total
