"""Motor de reglas para muestras de telemetría.

Mantiene un conjunto ordenado de reglas (prioridad descendente) y evalúa
cada muestra contra todas las reglas habilitadas.

GARANTÍAS:
- Reemplazo por nombre: nunca hay dos reglas con el mismo nombre
- Orden estable: a igual prioridad gana el orden de inserción; un
  reemplazo conserva el lugar original
- Aislamiento de fallos: una regla que lanza no aborta las demás
- Las acciones corren fuera de cualquier lock del motor
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from ..alerts.processor import AlertProcessor
from ..domain.sample import TelemetrySample
from ..monitoring import metrics
from ..monitoring.stats import EngineStatistics
from .default_rules import DefaultRuleThresholds, build_default_rules
from .rule import Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _RuleSlot:
    seq: int
    rule: Rule


class RuleEngine:
    """Motor de reglas thread-safe.

    Uso:
        engine = RuleEngine(processor)
        engine.setup_default_rules(DefaultRuleThresholds())
        engine.process(TelemetrySample.now("d1", 35.0, 50.0))
    """

    def __init__(self, processor: AlertProcessor):
        if processor is None:
            raise ValueError("Alert processor cannot be None")

        self._processor = processor
        self._slots: List[_RuleSlot] = []
        self._seq = itertools.count()
        self._rules_lock = threading.Lock()

        self._stats = EngineStatistics()
        self._stats_lock = threading.Lock()

        logger.info("[ENGINE] Rule engine initialized")

    # ------------------------------------------------------------------
    # Gestión de reglas
    # ------------------------------------------------------------------

    def add_rule(self, rule: Rule) -> None:
        """Inserta o reemplaza por nombre y reordena por prioridad."""
        with self._rules_lock:
            index = self._index_of(rule.name)
            if index is not None:
                logger.warning("[ENGINE] Rule '%s' already exists, replacing", rule.name)
                self._slots[index] = _RuleSlot(self._slots[index].seq, rule)
            else:
                self._slots.append(_RuleSlot(next(self._seq), rule))

            self._slots.sort(key=lambda slot: (-slot.rule.priority, slot.seq))

        logger.info("[ENGINE] Rule added: %s (priority: %d)", rule.name, rule.priority)

    def remove_rule(self, name: str) -> bool:
        with self._rules_lock:
            index = self._index_of(name)
            if index is not None:
                del self._slots[index]

        if index is None:
            logger.warning("[ENGINE] Rule '%s' not found", name)
            return False

        logger.info("[ENGINE] Rule removed: %s", name)
        return True

    def enable_rule(self, name: str) -> bool:
        return self._set_enabled(name, True)

    def disable_rule(self, name: str) -> bool:
        return self._set_enabled(name, False)

    def _set_enabled(self, name: str, enabled: bool) -> bool:
        with self._rules_lock:
            index = self._index_of(name)
            if index is not None:
                slot = self._slots[index]
                self._slots[index] = _RuleSlot(slot.seq, slot.rule.with_enabled(enabled))

        if index is None:
            logger.warning("[ENGINE] Rule '%s' not found", name)
            return False

        logger.info("[ENGINE] Rule %s: %s", "enabled" if enabled else "disabled", name)
        return True

    def _index_of(self, name: str) -> Optional[int]:
        """Posición de la regla por nombre. Requiere el lock de reglas."""
        for i, slot in enumerate(self._slots):
            if slot.rule.name == name:
                return i
        return None

    def setup_default_rules(self, thresholds: Optional[DefaultRuleThresholds] = None) -> None:
        """Limpia el conjunto e instala las cinco reglas por defecto."""
        thresholds = thresholds or DefaultRuleThresholds()
        rules = build_default_rules(thresholds)

        # Un solo reemplazo: process() nunca ve un conjunto vacío o parcial.
        with self._rules_lock:
            slots = [_RuleSlot(next(self._seq), rule) for rule in rules]
            slots.sort(key=lambda slot: (-slot.rule.priority, slot.seq))
            self._slots = slots

        logger.info(
            "[ENGINE] %d default rules configured: temp>%.1f temp<%.1f hum>%.1f hum<%.1f",
            len(rules),
            thresholds.temp_high,
            thresholds.temp_low,
            thresholds.hum_high,
            thresholds.hum_low,
        )

    # ------------------------------------------------------------------
    # Procesamiento
    # ------------------------------------------------------------------

    def process(self, sample: TelemetrySample) -> List[str]:
        """Evalúa la muestra contra todas las reglas habilitadas.

        Returns:
            Nombres de las reglas disparadas, en orden de evaluación.
        """
        error = sample.validation_error()
        if error:
            logger.warning(
                "[ENGINE] Invalid data received device=%r, skipping: %s",
                sample.device_id, error,
            )
            metrics.SAMPLES_PROCESSED.labels(status="rejected").inc()
            return []

        with self._stats_lock:
            self._stats.total_processed += 1
        metrics.SAMPLES_PROCESSED.labels(status="accepted").inc()

        logger.debug(
            "[ENGINE] Data received device=%s T=%.1f H=%.1f",
            sample.device_id, sample.temperature, sample.humidity,
        )

        # Instantánea: no se mantiene el lock mientras corren las acciones.
        with self._rules_lock:
            rules = [slot.rule for slot in self._slots]

        triggered: List[str] = []
        for rule in rules:
            if not rule.enabled:
                continue

            if not self._evaluate_condition(rule, sample):
                continue

            self._execute_rule(rule, sample)
            triggered.append(rule.name)

            with self._stats_lock:
                self._stats.record_trigger(rule.name)
            metrics.RULES_TRIGGERED.labels(rule=rule.name).inc()

        if triggered:
            logger.info(
                "[ENGINE] %d rules triggered for device=%s: %s",
                len(triggered), sample.device_id, ", ".join(triggered),
            )

        return triggered

    def process_device_data(self, device_id: str, temperature: float, humidity: float) -> List[str]:
        """Atajo: construye la muestra con timestamp actual y la procesa."""
        return self.process(TelemetrySample.now(device_id, temperature, humidity))

    def _evaluate_condition(self, rule: Rule, sample: TelemetrySample) -> bool:
        try:
            return bool(rule.condition(sample, self._processor))
        except Exception as e:
            logger.exception("[ENGINE] Error evaluating condition of rule '%s': %s", rule.name, e)
            return False

    def _execute_rule(self, rule: Rule, sample: TelemetrySample) -> None:
        logger.debug(
            "[ENGINE] Rule triggered: %s for device=%s (%s)",
            rule.name, sample.device_id, rule.description,
        )
        try:
            rule.action(sample, self._processor)
        except Exception as e:
            metrics.RULE_ACTION_FAILURES.labels(rule=rule.name).inc()
            logger.exception("[ENGINE] Error executing rule '%s': %s", rule.name, e)

    # ------------------------------------------------------------------
    # Consulta
    # ------------------------------------------------------------------

    def get_rule_names(self) -> List[str]:
        with self._rules_lock:
            return [slot.rule.name for slot in self._slots]

    def get_rule(self, name: str) -> Optional[Rule]:
        with self._rules_lock:
            index = self._index_of(name)
            return self._slots[index].rule if index is not None else None

    def rule_exists(self, name: str) -> bool:
        return self.get_rule(name) is not None

    def get_statistics(self) -> EngineStatistics:
        with self._stats_lock:
            return self._stats.snapshot()

    def reset_statistics(self) -> None:
        with self._stats_lock:
            self._stats.reset()
        logger.info("[ENGINE] Statistics reset")
