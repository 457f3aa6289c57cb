"""Tests de los gateways de notificación."""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from alert_service.core.domain.alert_config import Direction, MetricKind
from alert_service.infrastructure.notifications.gateways import (
    LoggingNotificationGateway,
    TelegramNotificationGateway,
    format_alert_message,
)


@pytest.fixture
def session() -> MagicMock:
    s = MagicMock()
    s.post.return_value = MagicMock(ok=True, status_code=200, text="{}")
    return s


class TestFormatting:

    def test_temperature_above(self):
        msg = format_alert_message("d1", 35.04, MetricKind.TEMPERATURE, Direction.ABOVE)
        assert msg == "ALERT: temperature on device d1 is above threshold: 35.0°C"

    def test_humidity_below(self):
        msg = format_alert_message("d1", 12.0, MetricKind.HUMIDITY, Direction.BELOW)
        assert "humidity" in msg
        assert "below" in msg
        assert msg.endswith("12.0%")


class TestTelegramGateway:

    def test_posts_send_message(self, session):
        gw = TelegramNotificationGateway("TOKEN", session=session, timeout=3)

        gw.send_alert(123, "d1", 35.0, MetricKind.TEMPERATURE, Direction.ABOVE)

        session.post.assert_called_once()
        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        assert url == "https://api.telegram.org/botTOKEN/sendMessage"
        assert kwargs["json"]["chat_id"] == 123
        assert "d1" in kwargs["json"]["text"]
        assert kwargs["timeout"] == 3

    def test_network_error_is_logged_not_raised(self, session, caplog):
        session.post.side_effect = requests.ConnectionError("no route")
        gw = TelegramNotificationGateway("TOKEN", session=session)

        with caplog.at_level(logging.ERROR):
            gw.send_alert(1, "d1", 35.0, MetricKind.TEMPERATURE, Direction.ABOVE)

        assert any("[TELEGRAM]" in r.getMessage() for r in caplog.records)

    def test_http_error_is_logged_not_raised(self, session, caplog):
        session.post.return_value = MagicMock(ok=False, status_code=403, text="Forbidden")
        gw = TelegramNotificationGateway("TOKEN", session=session)

        with caplog.at_level(logging.ERROR):
            gw.send_alert(1, "d1", 35.0, MetricKind.TEMPERATURE, Direction.ABOVE)

        assert any("403" in r.getMessage() for r in caplog.records)

    def test_token_required(self):
        with pytest.raises(ValueError):
            TelegramNotificationGateway("")


class TestLoggingGateway:

    def test_logs_alert(self, caplog):
        with caplog.at_level(logging.WARNING):
            LoggingNotificationGateway().send_alert(
                9, "d2", 80.0, MetricKind.HUMIDITY, Direction.ABOVE
            )

        assert any("[NOTIFY] user=9" in r.getMessage() for r in caplog.records)
