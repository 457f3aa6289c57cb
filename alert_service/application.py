"""Composición del servicio de alertas.

Construye todos los componentes a partir de un único ``Settings`` y
gestiona el orden de arranque/parada:

    start:    poller → simulador
    shutdown: poller (stop + join) → simulador → token raíz
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from common.config import Settings
from common.db import get_engine

from .core.alerts.processor import AlertProcessor
from .core.domain.contracts import DataRepository, NotificationGateway
from .core.domain.alert_config import SubscriberAlertConfig
from .core.domain.sample import TelemetrySample
from .core.engine.default_rules import DefaultRuleThresholds
from .core.engine.rule_engine import RuleEngine
from .core.polling.cancellation import CancellationToken
from .core.polling.poller import Poller
from .infrastructure.notifications.gateways import (
    LoggingNotificationGateway,
    TelegramNotificationGateway,
)
from .infrastructure.persistence.memory_repository import InMemoryDataRepository
from .infrastructure.persistence.sql_repository import SqlDataRepository
from .simulation.simulator import DeviceSimulator, SimulatedDeviceConfig

logger = logging.getLogger(__name__)

# Tiempo máximo de espera por thread durante el shutdown.
SHUTDOWN_JOIN_TIMEOUT = 10.0


def build_repository(settings: Settings) -> DataRepository:
    if settings.repository_backend == "memory":
        logger.info("[APP] Using in-memory repository")
        return InMemoryDataRepository()

    engine = get_engine(settings.database_url)
    remote_engine = None
    if settings.remote_db_enabled and settings.remote_database_url:
        remote_engine = get_engine(settings.remote_database_url)
    return SqlDataRepository(engine, remote_engine=remote_engine)


def build_gateway(settings: Settings) -> NotificationGateway:
    if settings.telegram_enabled:
        logger.info("[APP] Telegram notifications enabled")
        return TelegramNotificationGateway(settings.telegram_bot_token)
    logger.warning("[APP] Telegram notifications disabled (no token), logging alerts only")
    return LoggingNotificationGateway()


class AlertingApplication:
    """Servicio completo: repositorio, gateway, procesador, motor, poller y simulador."""

    def __init__(
        self,
        settings: Settings,
        repository: Optional[DataRepository] = None,
        gateway: Optional[NotificationGateway] = None,
    ):
        self.settings = settings
        self.cancellation = CancellationToken()

        self.repository = repository if repository is not None else build_repository(settings)
        self.gateway = gateway if gateway is not None else build_gateway(settings)

        self.processor = AlertProcessor(
            self.repository,
            self.gateway,
            cooldown_seconds=settings.alert_cooldown_seconds,
        )
        self.engine = RuleEngine(self.processor)
        self.engine.setup_default_rules(
            DefaultRuleThresholds(
                temp_high=settings.rule_temp_high,
                temp_low=settings.rule_temp_low,
                hum_high=settings.rule_hum_high,
                hum_low=settings.rule_hum_low,
            )
        )
        self.poller = Poller(
            self.processor,
            interval_seconds=settings.remote_polling_interval_seconds,
            cancellation=self.cancellation,
        )
        self.simulator = DeviceSimulator(cancellation=self.cancellation)

        self._lifecycle_lock = threading.Lock()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lifecycle_lock:
            if self._running:
                return
            if self.cancellation.is_cancelled:
                logger.warning("[APP] Application already shut down, not restarting")
                return
            self._running = True

        logger.info("[APP] Starting alerting service...")

        self._seed_test_subscriber()

        if self.settings.remote_db_enabled or self.settings.simulation_enabled:
            self.poller.start(self.settings.remote_polling_interval_seconds)
        else:
            logger.warning("[APP] Remote database disabled, poller not started")

        if self.settings.simulation_enabled:
            self._start_simulation()

        logger.info("[APP] Alerting service running")

    def _simulated_device_ids(self) -> List[str]:
        return [f"sim_device_{i}" for i in range(1, self.settings.simulation_device_count + 1)]

    def _seed_test_subscriber(self) -> None:
        """Suscribe el usuario de prueba a los dispositivos de prueba y simulados.

        Solo aplica a repositorios que admiten escritura (modo en memoria);
        en SQL las suscripciones se gestionan fuera del servicio.
        """
        user_id = self.settings.test_user_id
        if user_id <= 0:
            return

        subscribe = getattr(self.repository, "subscribe", None)
        set_user_alert = getattr(self.repository, "set_user_alert", None)
        if subscribe is None or set_user_alert is None:
            logger.info("[APP] Repository is read-only, test subscriber %s not seeded", user_id)
            return

        set_user_alert(
            SubscriberAlertConfig(
                user_id=user_id,
                temp_high=self.settings.rule_temp_high,
                temp_low=self.settings.rule_temp_low,
                hum_high=self.settings.rule_hum_high,
                hum_low=self.settings.rule_hum_low,
            )
        )

        devices = list(self.settings.test_device_ids)
        if self.settings.simulation_enabled:
            devices.extend(self._simulated_device_ids())
        for device_id in devices:
            subscribe(user_id, device_id)

        logger.info("[APP] Test subscriber %s seeded on %d devices", user_id, len(devices))

    def _start_simulation(self) -> None:
        for device_id in self._simulated_device_ids():
            self.simulator.add_device(
                SimulatedDeviceConfig(
                    device_id=device_id,
                    update_interval_ms=self.settings.simulation_interval_ms,
                )
            )
        self.simulator.start_all(self.ingest_sample)
        logger.info("[APP] %d simulated devices started", self.settings.simulation_device_count)

    def ingest_sample(self, sample: TelemetrySample) -> List[str]:
        """Ruta común de HTTP y simulador.

        Registra la muestra válida si el repositorio lo soporta (modo en
        memoria) y la evalúa con el motor. Retorna las reglas disparadas.
        """
        record = getattr(self.repository, "record_telemetry", None)
        if record is not None and sample.is_valid():
            record(sample)
        return self.engine.process(sample)

    def simulate_spike(
        self, device_id: str, temperature_delta: float, humidity_delta: float
    ) -> None:
        """Desplaza la próxima lectura de un dispositivo simulado.

        Lanza KeyError si el dispositivo no existe.
        """
        self.simulator.simulate_spike(device_id, temperature_delta, humidity_delta)
        logger.info(
            "[APP] Spike scheduled on %s: dt=%.1f dh=%.1f",
            device_id,
            temperature_delta,
            humidity_delta,
        )

    def shutdown(self) -> None:
        with self._lifecycle_lock:
            if not self._running:
                return
            self._running = False

        logger.info("[APP] Shutting down alerting service...")

        self.poller.stop(timeout=SHUTDOWN_JOIN_TIMEOUT)
        logger.info("[APP] Poller stopped")

        self.simulator.stop_all(timeout=SHUTDOWN_JOIN_TIMEOUT)

        self.cancellation.cancel()
        logger.info("[APP] Shutdown complete")

    def statistics(self) -> dict:
        return {
            "engine": self.engine.get_statistics().to_dict(),
            "alerts": self.processor.get_statistics().to_dict(),
            "poller": {
                "running": self.poller.is_running,
                **self.poller.get_statistics().to_dict(),
            },
            "dedup": self.processor.dedup_cache.stats,
        }

    def reset_statistics(self) -> None:
        self.engine.reset_statistics()
        self.processor.reset_statistics()
