"""Dispositivos simulados: un thread por dispositivo.

Cada dispositivo emite lecturas dentro de su rango configurado y las
entrega a un callback (normalmente ``RuleEngine.process``). La parada es
cooperativa vía ``CancellationToken``.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..core.domain.sample import TelemetrySample
from ..core.polling.cancellation import CancellationToken

logger = logging.getLogger(__name__)

SampleCallback = Callable[[TelemetrySample], None]


@dataclass(frozen=True)
class SimulatedDeviceConfig:
    """Configuración de un dispositivo simulado."""
    device_id: str
    min_temperature: float = 15.0
    max_temperature: float = 30.0
    min_humidity: float = 30.0
    max_humidity: float = 70.0
    update_interval_ms: int = 10_000


class SimulatedDevice:
    """Dispositivo virtual con su propio thread de emisión."""

    def __init__(self, config: SimulatedDeviceConfig, seed: Optional[int] = None):
        self.config = config
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self._pending_spike: Optional[Tuple[float, float]] = None
        self._last_sample: Optional[TelemetrySample] = None
        self._emitted = 0

        self._token: Optional[CancellationToken] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def emitted(self) -> int:
        with self._lock:
            return self._emitted

    @property
    def last_sample(self) -> Optional[TelemetrySample]:
        with self._lock:
            return self._last_sample

    def start(self, callback: SampleCallback, parent: Optional[CancellationToken] = None) -> None:
        if self.is_running:
            return

        self._token = parent.child() if parent is not None else CancellationToken()
        self._thread = threading.Thread(
            target=self._simulation_loop,
            args=(callback, self._token),
            name=f"sim-{self.config.device_id}",
            daemon=True,
        )
        self._thread.start()
        logger.info("[SIM] Device started: %s", self.config.device_id)

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._token is not None:
            self._token.cancel()

        thread = self._thread
        if thread is None:
            return

        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning(
                "[SIM] Device %s did not stop within %.1fs", self.config.device_id, timeout or 0
            )
            return

        self._thread = None
        self._token = None

    def simulate_spike(self, temperature_delta: float, humidity_delta: float) -> None:
        """La próxima lectura se desplaza por los deltas dados."""
        with self._lock:
            self._pending_spike = (temperature_delta, humidity_delta)

    def generate_sample(self) -> TelemetrySample:
        cfg = self.config
        temperature = self._random.uniform(cfg.min_temperature, cfg.max_temperature)
        humidity = self._random.uniform(cfg.min_humidity, cfg.max_humidity)

        with self._lock:
            if self._pending_spike is not None:
                dt, dh = self._pending_spike
                self._pending_spike = None
                temperature += dt
                humidity += dh

        return TelemetrySample.now(cfg.device_id, round(temperature, 2), round(humidity, 2))

    def _simulation_loop(self, callback: SampleCallback, token: CancellationToken) -> None:
        interval = self.config.update_interval_ms / 1000.0
        while not token.is_cancelled:
            sample = self.generate_sample()
            with self._lock:
                self._last_sample = sample
                self._emitted += 1

            try:
                callback(sample)
            except Exception as e:
                logger.exception("[SIM] Callback failed device=%s err=%s", self.config.device_id, e)

            if token.wait(interval):
                break

        logger.info("[SIM] Device stopped: %s", self.config.device_id)


class DeviceSimulator:
    """Conjunto de dispositivos simulados."""

    def __init__(self, cancellation: Optional[CancellationToken] = None):
        self._devices: Dict[str, SimulatedDevice] = {}
        self._lock = threading.Lock()
        self._cancellation = cancellation

    def add_device(self, config: SimulatedDeviceConfig, seed: Optional[int] = None) -> str:
        with self._lock:
            if config.device_id in self._devices:
                raise ValueError(f"Device already exists: {config.device_id}")
            self._devices[config.device_id] = SimulatedDevice(config, seed=seed)
        return config.device_id

    def remove_device(self, device_id: str) -> bool:
        with self._lock:
            device = self._devices.pop(device_id, None)
        if device is None:
            return False
        device.stop()
        return True

    def start_all(self, callback: SampleCallback) -> None:
        for device in self._snapshot():
            device.start(callback, parent=self._cancellation)

    def stop_all(self, timeout: Optional[float] = None) -> None:
        for device in self._snapshot():
            device.stop(timeout=timeout)
        logger.info("[SIM] All simulated devices stopped")

    def simulate_spike(self, device_id: str, temperature_delta: float, humidity_delta: float) -> None:
        with self._lock:
            device = self._devices.get(device_id)
        if device is None:
            raise KeyError(device_id)
        device.simulate_spike(temperature_delta, humidity_delta)

    def get_device_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._devices)

    def get_device(self, device_id: str) -> Optional[SimulatedDevice]:
        with self._lock:
            return self._devices.get(device_id)

    def active_device_count(self) -> int:
        return sum(1 for d in self._snapshot() if d.is_running)

    def _snapshot(self) -> List[SimulatedDevice]:
        with self._lock:
            return list(self._devices.values())
