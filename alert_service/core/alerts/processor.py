"""Procesador de alertas por suscriptor.

Para cada muestra:
1. Resuelve los suscriptores del dispositivo (repositorio)
2. Compara contra los umbrales personales armados (> 0)
3. Consulta el cache de deduplicación por (usuario, dispositivo, tipo)
4. Despacha al gateway de notificaciones y actualiza estadísticas

Además corre la red de seguridad global (solo log).

Ningún lock interno se mantiene mientras se llama al repositorio o al
gateway. Los fallos de colaboradores se capturan por llamada: un
suscriptor o dispositivo fallido no aborta el resto.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..domain.alert_config import AlertKind, MetricKind
from ..domain.contracts import DataRepository, NotificationGateway
from ..monitoring import metrics
from ..monitoring.stats import AlertStatistics
from .dedup import AlertDeduplicationCache
from .safety import GlobalSafetyLimits, check_global_limits

logger = logging.getLogger(__name__)


class AlertProcessor:
    """Evalúa umbrales personales y despacha notificaciones deduplicadas.

    Uso:
        processor = AlertProcessor(repository, gateway, cooldown_seconds=300)
        processor.process_sample("d1", 35.0, 50.0)
    """

    def __init__(
        self,
        repository: DataRepository,
        gateway: NotificationGateway,
        cooldown_seconds: float = AlertDeduplicationCache.DEFAULT_COOLDOWN,
        dedup_cache: Optional[AlertDeduplicationCache] = None,
        safety_limits: Optional[GlobalSafetyLimits] = None,
    ):
        self._repository = repository
        self._gateway = gateway
        self._cache = dedup_cache or AlertDeduplicationCache(cooldown_seconds=cooldown_seconds)
        self._safety_limits = safety_limits or GlobalSafetyLimits()

        self._stats = AlertStatistics()
        self._stats_lock = threading.Lock()

        logger.info(
            "[ALERTS] AlertProcessor initialized: cooldown=%.0fs",
            self._cache.cooldown_seconds,
        )

    @property
    def dedup_cache(self) -> AlertDeduplicationCache:
        return self._cache

    def process_sample(self, device_id: str, temperature: float, humidity: float) -> int:
        """Procesa una muestra para todos los suscriptores del dispositivo.

        Returns:
            Número de notificaciones despachadas.
        """
        logger.info(
            "[ALERTS] Processing data device=%s T=%.1f H=%.1f",
            device_id, temperature, humidity,
        )

        dispatched = 0
        try:
            subscribers = self._repository.get_device_subscribers(device_id)
        except Exception as e:
            logger.exception("[ALERTS] Failed to resolve subscribers device=%s err=%s", device_id, e)
            subscribers = []

        for user_id in subscribers:
            dispatched += self._check_user_alerts(user_id, device_id, temperature, humidity)

        check_global_limits(device_id, temperature, humidity, self._safety_limits)
        return dispatched

    def check_all_subscribed_devices(self) -> int:
        """Re-evalúa la última muestra de cada dispositivo con suscriptores.

        Punto de entrada del Poller. Nunca lanza excepciones.

        Returns:
            Número de dispositivos evaluados.
        """
        try:
            if not self._repository.is_remote_connected():
                logger.warning("[ALERTS] Remote database not connected, skipping check")
                return 0
            devices = self._repository.get_all_subscribed_devices()
        except Exception as e:
            logger.exception("[ALERTS] Failed to list subscribed devices err=%s", e)
            return 0

        if not devices:
            logger.info("[ALERTS] No subscribed devices to check")
            return 0

        logger.info("[ALERTS] Checking %d devices from remote database", len(devices))

        evaluated = 0
        for device_id in devices:
            try:
                if self._check_device(device_id):
                    evaluated += 1
            except Exception as e:
                logger.exception("[ALERTS] Error checking device=%s err=%s", device_id, e)

        return evaluated

    def _check_device(self, device_id: str) -> bool:
        """Evalúa la última muestra de un dispositivo. True si se evaluó."""
        sample = self._repository.get_latest_telemetry(device_id)
        if sample is None:
            logger.info("[ALERTS] No data for device=%s", device_id)
            return False

        logger.debug(
            "[ALERTS] Device=%s T=%.1f H=%.1f observed_at=%s",
            device_id, sample.temperature, sample.humidity, sample.observed_at.isoformat(),
        )

        subscribers = self._repository.get_device_subscribers(device_id)
        if not subscribers:
            logger.info("[ALERTS] No subscribers for device=%s", device_id)
            return False

        for user_id in subscribers:
            self._check_user_alerts(user_id, device_id, sample.temperature, sample.humidity)

        return True

    def _check_user_alerts(
        self,
        user_id: int,
        device_id: str,
        temperature: float,
        humidity: float,
    ) -> int:
        try:
            config = self._repository.get_user_alert(user_id)
        except Exception as e:
            logger.exception("[ALERTS] Failed to load thresholds user=%s err=%s", user_id, e)
            return 0

        if not config.has_any_armed():
            return 0

        dispatched = 0
        for kind, value, threshold in config.triggered_kinds(temperature, humidity):
            if not self.should_notify(user_id, device_id, kind, value):
                continue

            logger.info(
                "[ALERTS] %s alert user=%s device=%s value=%.1f threshold=%.1f",
                kind.value, user_id, device_id, value, threshold,
            )
            if self._dispatch(user_id, device_id, kind, value):
                dispatched += 1

        return dispatched

    def should_notify(self, user_id: int, device_id: str, kind: AlertKind, value: float) -> bool:
        """Consulta el cache de deduplicación (check-then-insert atómico)."""
        allowed = self._cache.should_notify(user_id, device_id, kind)
        if not allowed:
            with self._stats_lock:
                self._stats.alerts_suppressed += 1
            metrics.NOTIFICATIONS_SUPPRESSED.labels(kind=AlertKind(kind).value).inc()
            logger.debug(
                "[ALERTS] Suppressed duplicate user=%s device=%s kind=%s value=%.1f",
                user_id, device_id, AlertKind(kind).value, value,
            )
        return allowed

    def _dispatch(self, user_id: int, device_id: str, kind: AlertKind, value: float) -> bool:
        # Un solo intento por evento; sin reintentos.
        try:
            self._gateway.send_alert(user_id, device_id, value, kind.metric, kind.direction)
        except Exception as e:
            logger.exception(
                "[ALERTS] Notification failed user=%s device=%s kind=%s err=%s",
                user_id, device_id, kind.value, e,
            )
            return False

        self._update_statistics(kind)
        metrics.NOTIFICATIONS.labels(kind=kind.value).inc()
        return True

    def _update_statistics(self, kind: AlertKind) -> None:
        with self._stats_lock:
            self._stats.total_alerts += 1
            self._stats.users_notified += 1
            if kind.metric is MetricKind.TEMPERATURE:
                self._stats.temperature_alerts += 1
            else:
                self._stats.humidity_alerts += 1

    def get_statistics(self) -> AlertStatistics:
        with self._stats_lock:
            return self._stats.snapshot()

    def reset_statistics(self) -> None:
        with self._stats_lock:
            self._stats.reset()
        logger.info("[ALERTS] Statistics reset")
