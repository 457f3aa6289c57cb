"""Contratos de los colaboradores externos del núcleo."""

from __future__ import annotations

from typing import List, Optional, Protocol

from .alert_config import Direction, MetricKind, SubscriberAlertConfig
from .sample import TelemetrySample


class RepositoryError(Exception):
    """Fallo del repositorio de datos (BD caída, query inválida, etc.)."""


class NotificationError(Exception):
    """Fallo al entregar una notificación."""


class DataRepository(Protocol):
    """Fuente de suscriptores, umbrales y última telemetría.

    El núcleo solo depende de esta interfaz, no de la implementación SQL.
    Cualquier método puede lanzar excepciones; el llamador las captura.
    """

    def get_device_subscribers(self, device_id: str) -> List[int]:
        ...

    def get_user_alert(self, user_id: int) -> SubscriberAlertConfig:
        ...

    def get_all_subscribed_devices(self) -> List[str]:
        ...

    def get_latest_telemetry(self, device_id: str) -> Optional[TelemetrySample]:
        ...

    def is_remote_connected(self) -> bool:
        ...


class NotificationGateway(Protocol):
    """Entrega de alertas al usuario (fire-and-forget)."""

    def send_alert(
        self,
        user_id: int,
        device_id: str,
        value: float,
        metric_kind: MetricKind,
        direction: Direction,
    ) -> None:
        ...
