"""Fixtures compartidos de los tests del servicio de alertas."""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Callable
from unittest.mock import MagicMock

import pytest

from common.config import Settings
from alert_service.core.alerts.dedup import AlertDeduplicationCache
from alert_service.core.alerts.processor import AlertProcessor
from alert_service.core.domain.alert_config import SubscriberAlertConfig
from alert_service.core.engine.rule_engine import RuleEngine
from alert_service.infrastructure.persistence.memory_repository import InMemoryDataRepository


class FakeClock:
    """Reloj monotónico controlado manualmente."""

    def __init__(self, start: float = 1000.0):
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Espera activa acotada hasta que ``predicate`` sea verdadero."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


BASE_SETTINGS = Settings(
    database_url="sqlite://",
    repository_backend="memory",
    remote_db_enabled=False,
    remote_database_url="",
    remote_polling_interval_seconds=30,
    alert_cooldown_seconds=300.0,
    rule_temp_high=28.0,
    rule_temp_low=15.0,
    rule_hum_high=70.0,
    rule_hum_low=30.0,
    telegram_enabled=False,
    telegram_bot_token="",
    simulation_enabled=False,
    simulation_device_count=2,
    simulation_interval_ms=50,
    log_level="DEBUG",
)


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        return replace(BASE_SETTINGS, **overrides)
    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dedup_cache(clock) -> AlertDeduplicationCache:
    return AlertDeduplicationCache(cooldown_seconds=300, clock=clock)


@pytest.fixture
def repository() -> InMemoryDataRepository:
    """Repositorio con un suscriptor (user 1) del dispositivo d1."""
    repo = InMemoryDataRepository()
    repo.subscribe(1, "d1")
    repo.set_user_alert(
        SubscriberAlertConfig(user_id=1, temp_high=28.0, temp_low=15.0, hum_high=70.0, hum_low=30.0)
    )
    return repo


@pytest.fixture
def gateway() -> MagicMock:
    gw = MagicMock()
    gw.send_alert = MagicMock(return_value=None)
    return gw


@pytest.fixture
def processor(repository, gateway, dedup_cache) -> AlertProcessor:
    return AlertProcessor(repository, gateway, dedup_cache=dedup_cache)


@pytest.fixture
def engine(processor) -> RuleEngine:
    return RuleEngine(processor)
