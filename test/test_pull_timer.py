"""
Test suite for http_base PullTimer.

Tests cover:
- Arming, stopping and resetting
- Pushing pulled values
- Getter failures
"""

import pytest
from unittest.mock import Mock, patch
from http_base.pull_timer import PullTimer


@pytest.fixture
def mock_timer():
    with patch("http_base.pull_timer.Timer") as timer_cls:
        timer_cls.side_effect = lambda *args, **kwargs: Mock()
        yield timer_cls


class TestPullTimer:
    """Tests for PullTimer scheduling."""

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            PullTimer(0, Mock(), Mock())

    def test_start_arms_timer(self, mock_timer):
        timer = PullTimer(30000, Mock(), Mock())

        timer.start()

        mock_timer.assert_called_once_with(30.0, timer._handle_timer)
        timer._timer.start.assert_called_once()
        assert timer._timer.daemon is True

    def test_start_twice_arms_once(self, mock_timer):
        timer = PullTimer(1000, Mock(), Mock())

        timer.start()
        timer.start()

        assert mock_timer.call_count == 1

    def test_stop_cancels(self, mock_timer):
        timer = PullTimer(1000, Mock(), Mock())
        timer.start()
        armed = timer._timer

        timer.stop()

        armed.cancel.assert_called_once()
        assert timer._timer is None

    def test_reset_rearms(self, mock_timer):
        timer = PullTimer(1000, Mock(), Mock())
        timer.start()
        first = timer._timer

        timer.reset_timer()

        first.cancel.assert_called_once()
        assert timer._timer is not first
        assert mock_timer.call_count == 2

    def test_reset_when_stopped_is_noop(self, mock_timer):
        timer = PullTimer(1000, Mock(), Mock())

        timer.reset_timer()

        mock_timer.assert_not_called()

    def test_tick_pushes_value(self, mock_timer):
        getter = Mock(return_value=640)
        setter = Mock()
        timer = PullTimer(1000, getter, setter)
        timer.start()

        timer._handle_timer()

        getter.assert_called_once()
        setter.assert_called_once_with(640)
        assert timer._timer is not None
        assert mock_timer.call_count == 2

    def test_tick_getter_error(self, mock_timer):
        setter = Mock()
        timer = PullTimer(1000, Mock(side_effect=RuntimeError("down")), setter)
        timer.start()

        timer._handle_timer()

        setter.assert_not_called()
        assert timer._timer is not None

    def test_tick_when_getter_resets(self, mock_timer):
        """Test a getter that resets the timer is not armed twice."""
        timer = PullTimer(1000, None, Mock())
        timer.getter = Mock(side_effect=lambda: timer.reset_timer() or 500)
        timer.start()

        timer._handle_timer()

        assert mock_timer.call_count == 2

    def test_tick_after_stop_does_not_rearm(self, mock_timer):
        timer = PullTimer(1000, None, Mock())
        timer.getter = Mock(side_effect=lambda: timer.stop() or 500)
        timer.start()

        timer._handle_timer()

        assert timer._timer is None
        assert mock_timer.call_count == 1
