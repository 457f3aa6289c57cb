from __future__ import annotations

import threading
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Set

from ...core.domain.alert_config import SubscriberAlertConfig
from ...core.domain.sample import TelemetrySample


class InMemoryDataRepository:
    """Implementación en memoria del repositorio de datos.

    - Suscripciones, umbrales y telemetría viven en diccionarios
    - Thread-safe con un único lock (las operaciones son O(1) u O(n) chicas)
    - Usada en modo simulación y en tests
    """

    def __init__(self, history_size: int = 100, remote_connected: bool = True) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Set[int]] = defaultdict(set)
        self._alerts: Dict[int, SubscriberAlertConfig] = {}
        self._telemetry: Dict[str, Deque[TelemetrySample]] = {}
        self._recent: Deque[TelemetrySample] = deque(maxlen=history_size)
        self._history_size = history_size
        self._remote_connected = remote_connected

    # Suscripciones

    def subscribe(self, user_id: int, device_id: str) -> None:
        with self._lock:
            self._subscribers[device_id].add(int(user_id))

    def unsubscribe(self, user_id: int, device_id: str) -> None:
        with self._lock:
            subscribers = self._subscribers.get(device_id)
            if subscribers is not None:
                subscribers.discard(int(user_id))
                if not subscribers:
                    del self._subscribers[device_id]

    def get_device_subscribers(self, device_id: str) -> List[int]:
        with self._lock:
            return sorted(self._subscribers.get(device_id, ()))

    def get_all_subscribed_devices(self) -> List[str]:
        with self._lock:
            return sorted(d for d, users in self._subscribers.items() if users)

    # Umbrales

    def set_user_alert(self, config: SubscriberAlertConfig) -> None:
        with self._lock:
            self._alerts[config.user_id] = config

    def get_user_alert(self, user_id: int) -> SubscriberAlertConfig:
        with self._lock:
            return self._alerts.get(int(user_id), SubscriberAlertConfig(user_id=int(user_id)))

    # Telemetría

    def record_telemetry(self, sample: TelemetrySample) -> None:
        with self._lock:
            history = self._telemetry.setdefault(
                sample.device_id, deque(maxlen=self._history_size)
            )
            history.append(sample)
            self._recent.append(sample)

    def get_latest_telemetry(self, device_id: str) -> Optional[TelemetrySample]:
        with self._lock:
            history = self._telemetry.get(device_id)
            return history[-1] if history else None

    def get_recent_telemetry(self, limit: int = 10) -> List[TelemetrySample]:
        """Últimas muestras registradas, la más nueva primero."""
        with self._lock:
            return list(reversed(self._recent))[:limit]

    # Enlace remoto

    def set_remote_connected(self, connected: bool) -> None:
        with self._lock:
            self._remote_connected = connected

    def is_remote_connected(self) -> bool:
        with self._lock:
            return self._remote_connected
