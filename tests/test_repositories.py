"""Tests de los repositorios (memoria y SQL sobre SQLite).

Ejecutar:
    pytest tests/test_repositories.py -v
"""

import logging
from datetime import timezone

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from alert_service.core.domain.alert_config import SubscriberAlertConfig
from alert_service.core.domain.contracts import RepositoryError
from alert_service.core.domain.sample import TelemetrySample
from alert_service.infrastructure.persistence.memory_repository import InMemoryDataRepository
from alert_service.infrastructure.persistence.sql_repository import SqlDataRepository
from common.db import get_engine


def _sqlite_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )


@pytest.fixture
def local_engine():
    engine = _sqlite_engine()
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE user_devices (chat_id INTEGER, device_id TEXT)"))
        conn.execute(
            text(
                """
                CREATE TABLE user_alerts (
                    chat_id INTEGER PRIMARY KEY,
                    temp_high_threshold REAL,
                    temp_low_threshold REAL,
                    hum_high_threshold REAL,
                    hum_low_threshold REAL
                )
                """
            )
        )
        conn.execute(
            text("INSERT INTO user_devices VALUES (10, 'd1'), (11, 'd1'), (10, 'd2')")
        )
        conn.execute(text("INSERT INTO user_alerts VALUES (10, 28.0, 15.0, NULL, 30.0)"))
    return engine


@pytest.fixture
def remote_engine():
    engine = _sqlite_engine()
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE telemetry_data (
                    device_id TEXT, temperature REAL, humidity REAL, timestamp TEXT
                )
                """
            )
        )
        conn.execute(
            text(
                """
                INSERT INTO telemetry_data VALUES
                    ('d1', 20.0, 50.0, '2024-05-01T10:00:00'),
                    ('d1', 33.5, 55.0, '2024-05-01T10:05:00'),
                    ('d2', 18.0, 40.0, '2024-05-01T10:01:00')
                """
            )
        )
    return engine


# =============================================================================
# REPOSITORIO EN MEMORIA
# =============================================================================

class TestInMemoryRepository:

    def test_subscriptions(self):
        repo = InMemoryDataRepository()
        repo.subscribe(2, "d1")
        repo.subscribe(1, "d1")
        repo.subscribe(1, "d0")

        assert repo.get_device_subscribers("d1") == [1, 2]
        assert repo.get_all_subscribed_devices() == ["d0", "d1"]

        repo.unsubscribe(1, "d0")
        assert repo.get_all_subscribed_devices() == ["d1"]

    def test_missing_config_is_unarmed(self):
        config = InMemoryDataRepository().get_user_alert(5)

        assert config.user_id == 5
        assert config.has_any_armed() is False

    def test_latest_and_recent_telemetry(self):
        repo = InMemoryDataRepository(history_size=3)
        for t in (20.0, 21.0, 22.0, 23.0):
            repo.record_telemetry(TelemetrySample.now("d1", t, 50.0))
        repo.record_telemetry(TelemetrySample.now("d2", 30.0, 50.0))

        assert repo.get_latest_telemetry("d1").temperature == 23.0
        assert repo.get_latest_telemetry("missing") is None

        recent = repo.get_recent_telemetry(limit=10)
        assert [s.temperature for s in recent] == [30.0, 23.0, 22.0]

    def test_remote_link_flag(self):
        repo = InMemoryDataRepository(remote_connected=False)
        assert repo.is_remote_connected() is False

        repo.set_remote_connected(True)
        assert repo.is_remote_connected() is True


# =============================================================================
# REPOSITORIO SQL
# =============================================================================

class TestSqlRepository:

    def test_subscribers(self, local_engine):
        repo = SqlDataRepository(local_engine)

        assert sorted(repo.get_device_subscribers("d1")) == [10, 11]
        assert repo.get_device_subscribers("unknown") == []
        assert repo.get_all_subscribed_devices() == ["d1", "d2"]

    def test_user_alert_null_is_unarmed(self, local_engine):
        config = SqlDataRepository(local_engine).get_user_alert(10)

        assert config == SubscriberAlertConfig(
            user_id=10, temp_high=28.0, temp_low=15.0, hum_high=0.0, hum_low=30.0
        )

    def test_user_alert_missing_row(self, local_engine):
        config = SqlDataRepository(local_engine).get_user_alert(99)

        assert config.has_any_armed() is False

    def test_latest_telemetry(self, local_engine, remote_engine):
        repo = SqlDataRepository(local_engine, remote_engine=remote_engine)

        sample = repo.get_latest_telemetry("d1")

        assert sample.temperature == 33.5
        assert sample.humidity == 55.0
        assert sample.observed_at.tzinfo is timezone.utc
        assert repo.get_latest_telemetry("none") is None

    def test_recent_telemetry(self, local_engine, remote_engine):
        repo = SqlDataRepository(local_engine, remote_engine=remote_engine)

        recent = repo.get_recent_telemetry(limit=2)

        assert [(s.device_id, s.temperature) for s in recent] == [("d1", 33.5), ("d2", 18.0)]

    def test_without_remote_engine(self, local_engine):
        repo = SqlDataRepository(local_engine)

        assert repo.is_remote_connected() is False
        assert repo.get_latest_telemetry("d1") is None
        assert repo.get_recent_telemetry() == []

    def test_remote_connected(self, local_engine, remote_engine):
        assert SqlDataRepository(local_engine, remote_engine).is_remote_connected() is True

    def test_driver_errors_are_wrapped(self):
        repo = SqlDataRepository(_sqlite_engine())

        with pytest.raises(RepositoryError):
            repo.get_device_subscribers("d1")
        with pytest.raises(RepositoryError):
            repo.get_user_alert(1)


class TestEngineFactory:

    def test_get_engine_probes(self, caplog):
        with caplog.at_level(logging.INFO):
            engine = get_engine("sqlite://")

        with engine.connect() as conn:
            assert conn.execute(text("SELECT 1")).scalar() == 1
        assert any("[DB]" in r.getMessage() for r in caplog.records)
