"""Cache de deduplicación de alertas.

Evita notificar la misma condición al mismo usuario varias veces
dentro de la ventana de cooldown.

CLAVE DE DEDUPLICACIÓN: (user_id, device_id, alert_kind)
- Granularidad por tipo: temp_high y temp_low son ventanas independientes
- Evicción perezosa: las entradas vencidas se borran en el siguiente acceso
- Check-then-insert atómico bajo un único lock
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Tuple

from ..domain.alert_config import AlertKind

logger = logging.getLogger(__name__)

DedupKey = Tuple[int, str, AlertKind]


class AlertDeduplicationCache:
    """Cache thread-safe de últimas alertas enviadas.

    Uso:
        cache = AlertDeduplicationCache(cooldown_seconds=300)
        if cache.should_notify(user_id, device_id, AlertKind.TEMP_HIGH):
            gateway.send_alert(...)
    """

    DEFAULT_COOLDOWN = 300.0  # 5 minutos

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Inicializa el cache.

        Args:
            cooldown_seconds: Ventana mínima entre dos alertas iguales.
            clock: Reloj monotónico en segundos (inyectable para tests).
        """
        self._cooldown = float(cooldown_seconds)
        self._clock = clock
        self._cache: Dict[DedupKey, float] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown

    def should_notify(self, user_id: int, device_id: str, kind: AlertKind) -> bool:
        """Decide si la alerta debe enviarse y registra el envío.

        Returns:
            True si no hay una entrada viva para la clave (y la crea);
            False si la alerta es duplicada (el cache no cambia).
        """
        key: DedupKey = (int(user_id), device_id, AlertKind(kind))

        with self._lock:
            now = self._clock()
            self._evict_expired(now)

            if key in self._cache:
                self._hits += 1
                logger.debug(
                    "[DEDUP] Skipping duplicate alert user=%s device=%s kind=%s",
                    user_id, device_id, key[2].value,
                )
                return False

            self._cache[key] = now
            self._misses += 1
            return True

    def _evict_expired(self, now: float) -> None:
        """Elimina entradas más viejas que la ventana. Requiere el lock."""
        expired = [k for k, fired_at in self._cache.items() if now - fired_at > self._cooldown]
        for k in expired:
            del self._cache[k]

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._cache),
                "cooldown_seconds": self._cooldown,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 0,
            }
