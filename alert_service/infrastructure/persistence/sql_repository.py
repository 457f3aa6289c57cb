"""Repositorio SQL (SQLAlchemy) de suscripciones, umbrales y telemetría.

- BD local: ``user_devices`` y ``user_alerts``
- BD remota (opcional): ``telemetry_data``, fuente del poller

El esquema lo gestionan las migraciones del backend; aquí solo se consulta.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain.alert_config import SubscriberAlertConfig
from ...core.domain.contracts import RepositoryError
from ...core.domain.sample import TelemetrySample

logger = logging.getLogger(__name__)


def _as_float(value) -> float:
    return float(value) if value is not None else 0.0


def _as_utc(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


class SqlDataRepository:
    """Implementación del repositorio sobre dos engines SQLAlchemy.

    Los errores del driver se envuelven en ``RepositoryError``; el
    procesador de alertas los captura por llamada.
    """

    def __init__(self, engine: Engine, remote_engine: Optional[Engine] = None) -> None:
        self._engine = engine
        self._remote_engine = remote_engine

    def get_device_subscribers(self, device_id: str) -> List[int]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text("SELECT chat_id FROM user_devices WHERE device_id = :device_id"),
                    {"device_id": device_id},
                ).fetchall()
        except SQLAlchemyError as e:
            raise RepositoryError(f"get_device_subscribers({device_id}) failed: {e}") from e
        return [int(row[0]) for row in rows]

    def get_all_subscribed_devices(self) -> List[str]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text("SELECT DISTINCT device_id FROM user_devices ORDER BY device_id")
                ).fetchall()
        except SQLAlchemyError as e:
            raise RepositoryError(f"get_all_subscribed_devices failed: {e}") from e
        return [str(row[0]) for row in rows]

    def get_user_alert(self, user_id: int) -> SubscriberAlertConfig:
        try:
            with self._engine.connect() as conn:
                row = (
                    conn.execute(
                        text(
                            """
                            SELECT temp_high_threshold, temp_low_threshold,
                                   hum_high_threshold, hum_low_threshold
                            FROM user_alerts
                            WHERE chat_id = :chat_id
                            """
                        ),
                        {"chat_id": int(user_id)},
                    )
                    .mappings()
                    .first()
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"get_user_alert({user_id}) failed: {e}") from e

        if not row:
            return SubscriberAlertConfig(user_id=int(user_id))

        # NULL en la BD equivale a "sin configurar" (0).
        return SubscriberAlertConfig(
            user_id=int(user_id),
            temp_high=_as_float(row.get("temp_high_threshold")),
            temp_low=_as_float(row.get("temp_low_threshold")),
            hum_high=_as_float(row.get("hum_high_threshold")),
            hum_low=_as_float(row.get("hum_low_threshold")),
        )

    def get_latest_telemetry(self, device_id: str) -> Optional[TelemetrySample]:
        if self._remote_engine is None:
            return None

        try:
            with self._remote_engine.connect() as conn:
                row = (
                    conn.execute(
                        text(
                            """
                            SELECT device_id, temperature, humidity, timestamp
                            FROM telemetry_data
                            WHERE device_id = :device_id
                            ORDER BY timestamp DESC
                            LIMIT 1
                            """
                        ),
                        {"device_id": device_id},
                    )
                    .mappings()
                    .first()
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"get_latest_telemetry({device_id}) failed: {e}") from e

        if not row:
            return None

        return TelemetrySample(
            device_id=str(row["device_id"]),
            temperature=float(row["temperature"]),
            humidity=float(row["humidity"]),
            observed_at=_as_utc(row.get("timestamp")),
        )

    def get_recent_telemetry(self, limit: int = 10) -> List[TelemetrySample]:
        if self._remote_engine is None:
            return []

        try:
            with self._remote_engine.connect() as conn:
                rows = (
                    conn.execute(
                        text(
                            """
                            SELECT device_id, temperature, humidity, timestamp
                            FROM telemetry_data
                            ORDER BY timestamp DESC
                            LIMIT :limit
                            """
                        ),
                        {"limit": int(limit)},
                    )
                    .mappings()
                    .all()
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"get_recent_telemetry failed: {e}") from e

        return [
            TelemetrySample(
                device_id=str(r["device_id"]),
                temperature=float(r["temperature"]),
                humidity=float(r["humidity"]),
                observed_at=_as_utc(r.get("timestamp")),
            )
            for r in rows
        ]

    def is_remote_connected(self) -> bool:
        if self._remote_engine is None:
            return False
        try:
            with self._remote_engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("[REPO] Remote database unreachable")
            return False
