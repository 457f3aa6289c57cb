"""Gateways de notificación.

Fire-and-forget: el gateway loguea éxito o fallo y nunca propaga
excepciones de red al núcleo.
"""

from __future__ import annotations

import logging

import requests

from ...core.domain.alert_config import Direction, MetricKind
from ...core.domain.contracts import NotificationError

logger = logging.getLogger(__name__)

_UNITS = {MetricKind.TEMPERATURE: "°C", MetricKind.HUMIDITY: "%"}


def format_alert_message(
    device_id: str,
    value: float,
    metric_kind: MetricKind,
    direction: Direction,
) -> str:
    """Mensaje corto en texto plano para la alerta."""
    metric = MetricKind(metric_kind)
    arrow = "above" if Direction(direction) is Direction.ABOVE else "below"
    return (
        f"ALERT: {metric.value} on device {device_id} is {arrow} threshold: "
        f"{value:.1f}{_UNITS[metric]}"
    )


class TelegramNotificationGateway:
    """Envía alertas por la Bot API de Telegram (sendMessage)."""

    API_URL = "https://api.telegram.org/bot{token}/sendMessage"
    DEFAULT_TIMEOUT = 5.0

    def __init__(self, bot_token: str, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        if not bot_token:
            raise ValueError("Telegram bot token is required")
        self._url = self.API_URL.format(token=bot_token)
        self._timeout = timeout
        self._session = session or requests.Session()

    def send_alert(
        self,
        user_id: int,
        device_id: str,
        value: float,
        metric_kind: MetricKind,
        direction: Direction,
    ) -> None:
        message = format_alert_message(device_id, value, metric_kind, direction)
        try:
            self._send_message(user_id, message)
            logger.info("[TELEGRAM] Alert sent chat_id=%s device=%s", user_id, device_id)
        except NotificationError as e:
            logger.error("[TELEGRAM] Failed to send alert chat_id=%s: %s", user_id, e)

    def _send_message(self, chat_id: int, message: str) -> None:
        try:
            response = self._session.post(
                self._url,
                json={"chat_id": chat_id, "text": message},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(str(e)) from e

        if not response.ok:
            raise NotificationError(f"{response.status_code} {response.text[:200]}")


class LoggingNotificationGateway:
    """Gateway sin canal externo: solo loguea (Telegram deshabilitado)."""

    def send_alert(
        self,
        user_id: int,
        device_id: str,
        value: float,
        metric_kind: MetricKind,
        direction: Direction,
    ) -> None:
        logger.warning(
            "[NOTIFY] user=%s %s",
            user_id, format_alert_message(device_id, value, metric_kind, direction),
        )
