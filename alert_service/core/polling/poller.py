"""Poller periódico de la fuente remota.

Un único thread en background que cada ``interval_seconds`` invoca
``AlertProcessor.check_all_subscribed_devices()``. Duerme en ticks de 1s
sobre el token de cancelación, así un stop se observa dentro de un tick.
Si un ciclo lanza, loguea y espera ``error_backoff_seconds`` antes de
reintentar; el loop no termina por errores.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from ..alerts.processor import AlertProcessor
from ..monitoring import metrics
from ..monitoring.stats import PollerStatistics
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


class Poller:
    """Tarea recurrente que re-evalúa todos los dispositivos suscritos.

    Uso:
        poller = Poller(processor, interval_seconds=30)
        poller.start()
        ...
        poller.stop()
    """

    DEFAULT_INTERVAL = 30.0
    DEFAULT_TICK = 1.0
    DEFAULT_ERROR_BACKOFF = 5.0

    def __init__(
        self,
        processor: AlertProcessor,
        interval_seconds: float = DEFAULT_INTERVAL,
        tick_seconds: float = DEFAULT_TICK,
        error_backoff_seconds: float = DEFAULT_ERROR_BACKOFF,
        cancellation: Optional[CancellationToken] = None,
    ):
        self._processor = processor
        self._interval = float(interval_seconds)
        self._tick = float(tick_seconds)
        self._error_backoff = float(error_backoff_seconds)
        self._parent_token = cancellation

        self._token: Optional[CancellationToken] = None
        self._thread: Optional[threading.Thread] = None
        self._lifecycle_lock = threading.Lock()

        self._stats = PollerStatistics()
        self._stats_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self, interval_seconds: Optional[float] = None) -> bool:
        """Inicia el thread de polling. No-op si ya está corriendo.

        Returns:
            True si el poller quedó corriendo.
        """
        with self._lifecycle_lock:
            if self.is_running:
                return True

            if self._parent_token is not None and self._parent_token.is_cancelled:
                logger.warning("[POLLER] Not starting: application is shutting down")
                return False

            if interval_seconds is not None:
                self._interval = float(interval_seconds)

            self._token = (
                self._parent_token.child() if self._parent_token is not None else CancellationToken()
            )
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(self._token,),
                name="remote-poller",
                daemon=True,
            )
            self._thread.start()

        logger.info("[POLLER] Started (interval: %.0fs)", self._interval)
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Parada cooperativa: marca el flag y espera al thread."""
        with self._lifecycle_lock:
            token, thread = self._token, self._thread
            if token is not None:
                token.cancel()

        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("[POLLER] Thread did not stop within %.1fs", timeout or 0)
                return

        with self._lifecycle_lock:
            if self._thread is thread:
                self._thread = None
                self._token = None

    def _run_loop(self, token: CancellationToken) -> None:
        """Loop principal del poller."""
        check_count = 0
        logger.info("[POLLER] Polling thread running")

        while not token.is_cancelled:
            try:
                check_count += 1
                logger.info("[POLLER] Check #%d of remote data...", check_count)

                devices = self._processor.check_all_subscribed_devices()
                self._record_cycle(devices)

                logger.info("[POLLER] Check #%d completed (%d devices)", check_count, devices)
                self._sleep(token, self._interval)

            except Exception as e:
                with self._stats_lock:
                    self._stats.failed_cycles += 1
                metrics.POLL_CYCLES.labels(status="failed").inc()
                logger.exception("[POLLER] Error in polling cycle: %s", e)
                self._sleep(token, self._error_backoff)

        logger.info("[POLLER] Polling thread stopped")

    def _sleep(self, token: CancellationToken, seconds: float) -> None:
        """Duerme en ticks para observar la cancelación a tiempo."""
        remaining = seconds
        while remaining > 0 and not token.is_cancelled:
            if token.wait(min(self._tick, remaining)):
                return
            remaining -= self._tick

    def _record_cycle(self, devices: int) -> None:
        with self._stats_lock:
            self._stats.cycles += 1
            self._stats.devices_checked += devices
            self._stats.last_cycle_at = time.time()
        metrics.POLL_CYCLES.labels(status="success").inc()

    def get_statistics(self) -> PollerStatistics:
        with self._stats_lock:
            return self._stats.snapshot()
