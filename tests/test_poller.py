"""Tests del poller y del token de cancelación.

Usan threads reales con intervalos cortos.

Ejecutar:
    pytest tests/test_poller.py -v
"""

import gc
import threading
import time
import weakref
from unittest.mock import MagicMock

import pytest

from alert_service.core.polling.cancellation import CancellationToken
from alert_service.core.polling.poller import Poller
from tests.conftest import wait_until


@pytest.fixture
def mock_processor() -> MagicMock:
    processor = MagicMock()
    processor.check_all_subscribed_devices.return_value = 2
    return processor


@pytest.fixture
def poller(mock_processor):
    p = Poller(mock_processor, interval_seconds=0.05, tick_seconds=0.01, error_backoff_seconds=0.05)
    yield p
    p.stop(timeout=2)


# =============================================================================
# TOKEN DE CANCELACIÓN
# =============================================================================

class TestCancellationToken:

    def test_initial_state(self):
        assert CancellationToken().is_cancelled is False

    def test_cancel_interrupts_wait(self):
        token = CancellationToken()
        threading.Timer(0.05, token.cancel).start()

        started = time.monotonic()
        assert token.wait(5) is True
        assert time.monotonic() - started < 2

    def test_wait_timeout_returns_false(self):
        assert CancellationToken().wait(0.01) is False

    def test_parent_cancels_children(self):
        parent = CancellationToken()
        child = parent.child()
        grandchild = child.child()

        parent.cancel()

        assert child.is_cancelled is True
        assert grandchild.is_cancelled is True

    def test_child_does_not_cancel_parent(self):
        parent = CancellationToken()
        child = parent.child()

        child.cancel()

        assert parent.is_cancelled is False

    def test_child_of_cancelled_parent_starts_cancelled(self):
        parent = CancellationToken()
        parent.cancel()

        assert parent.child().is_cancelled is True

    def test_released_child_is_not_retained(self):
        parent = CancellationToken()
        child_ref = weakref.ref(parent.child())

        gc.collect()

        assert child_ref() is None
        parent.cancel()

    def test_stopped_poller_releases_its_token(self, mock_processor):
        parent = CancellationToken()
        p = Poller(mock_processor, interval_seconds=0.05, tick_seconds=0.01, cancellation=parent)

        token_refs = []
        for _ in range(3):
            p.start()
            token_refs.append(weakref.ref(p._token))
            p.stop(timeout=2)

        gc.collect()

        assert all(ref() is None for ref in token_refs)


# =============================================================================
# CICLO DE VIDA
# =============================================================================

class TestPollerLifecycle:

    def test_start_runs_cycles(self, poller, mock_processor):
        assert poller.start() is True
        assert poller.is_running is True

        assert wait_until(lambda: mock_processor.check_all_subscribed_devices.call_count >= 2)

        stats = poller.get_statistics()
        assert stats.cycles >= 2
        assert stats.devices_checked >= 4
        assert stats.last_cycle_at is not None

    def test_second_start_is_noop(self, poller):
        poller.start()
        first_thread = poller._thread

        assert poller.start() is True
        assert poller._thread is first_thread

    def test_stop_joins_thread(self, poller, mock_processor):
        poller.start()
        wait_until(lambda: mock_processor.check_all_subscribed_devices.call_count >= 1)

        poller.stop(timeout=2)

        assert poller.is_running is False
        calls = mock_processor.check_all_subscribed_devices.call_count
        time.sleep(0.15)
        assert mock_processor.check_all_subscribed_devices.call_count == calls

    def test_stop_observed_within_a_tick(self, mock_processor):
        """Con intervalo largo, el stop no espera al intervalo completo."""
        poller = Poller(mock_processor, interval_seconds=30, tick_seconds=0.05)
        poller.start()
        wait_until(lambda: mock_processor.check_all_subscribed_devices.call_count >= 1)

        started = time.monotonic()
        poller.stop(timeout=5)

        assert time.monotonic() - started < 1.0
        assert poller.is_running is False

    def test_stop_without_start(self, poller):
        poller.stop()
        assert poller.is_running is False

    def test_restart_after_stop(self, poller, mock_processor):
        poller.start()
        poller.stop(timeout=2)

        assert poller.start() is True
        assert poller.is_running is True

    def test_start_overrides_interval(self, poller):
        poller.start(interval_seconds=0.2)
        assert poller.interval_seconds == 0.2

    def test_parent_cancellation_stops_loop(self, mock_processor):
        parent = CancellationToken()
        poller = Poller(mock_processor, interval_seconds=0.05, tick_seconds=0.01, cancellation=parent)
        poller.start()

        parent.cancel()

        assert wait_until(lambda: not poller.is_running, timeout=2)

    def test_start_refused_after_parent_cancelled(self, mock_processor):
        parent = CancellationToken()
        parent.cancel()
        poller = Poller(mock_processor, cancellation=parent)

        assert poller.start() is False
        assert poller.is_running is False


# =============================================================================
# ERRORES
# =============================================================================

class TestPollerErrors:

    def test_exception_backs_off_and_loop_continues(self, poller, mock_processor):
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("remote exploded")
            return 1

        mock_processor.check_all_subscribed_devices.side_effect = flaky
        poller.start()

        assert wait_until(lambda: poller.get_statistics().cycles >= 1)
        stats = poller.get_statistics()
        assert stats.failed_cycles == 1
        assert poller.is_running is True

    def test_statistics_to_dict(self, poller, mock_processor):
        poller.start()
        wait_until(lambda: poller.get_statistics().cycles >= 1)

        data = poller.get_statistics().to_dict()
        assert data["cycles"] >= 1
        assert "success_rate" in data
