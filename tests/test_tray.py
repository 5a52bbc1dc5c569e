"""Tests for the tray status indicator."""

from unittest.mock import MagicMock

import pytest

from isolarcloud_monitor.const import (
    APP_TITLE,
    BADGE_COLOR_HIGH,
    BADGE_COLOR_LOW,
    BADGE_COLOR_MEDIUM,
)
from isolarcloud_monitor.tray import TrayStatus, TrayUpdate, badge_color, build_badge


class TestBadge:
    """Tests for badge colour and fill."""

    @pytest.mark.parametrize(
        ("percent", "color"),
        [
            (0, BADGE_COLOR_LOW),
            (20, BADGE_COLOR_LOW),
            (21, BADGE_COLOR_MEDIUM),
            (50, BADGE_COLOR_MEDIUM),
            (51, BADGE_COLOR_HIGH),
            (100, BADGE_COLOR_HIGH),
        ],
    )
    def test_badge_color_thresholds(self, percent: int, color: tuple) -> None:
        """Test that the badge colour follows the charge thresholds."""
        assert badge_color(percent) == color

    def test_build_badge_clamps_fill(self) -> None:
        """Test that the badge fill is clamped to the unit range."""
        assert build_badge(45).fill == pytest.approx(0.45)
        assert build_badge(-5).fill == 0.0
        assert build_badge(150).fill == 1.0


class TestTrayStatus:
    """Tests for TrayStatus."""

    def test_initial_title(self) -> None:
        """Test that a new tray shows the app title and no percentage."""
        tray = TrayStatus()
        assert tray.title == APP_TITLE
        assert tray.percent is None

    def test_update_records_and_notifies(self) -> None:
        """Test that an update is recorded and sent to listeners."""
        tray = TrayStatus()
        listener = MagicMock()
        tray.register_listener(listener)

        tray.update(45, "Battery: 45%")

        assert tray.percent == 45
        assert tray.title == "Battery: 45%"
        listener.assert_called_once()
        update = listener.call_args.args[0]
        assert isinstance(update, TrayUpdate)
        assert update.badge.color == BADGE_COLOR_MEDIUM

    def test_unregister_listener(self) -> None:
        """Test that an unregistered listener is not called."""
        tray = TrayStatus()
        listener = MagicMock()
        unregister = tray.register_listener(listener)
        unregister()
        unregister()

        tray.update(80, "Battery: 80%")
        listener.assert_not_called()

    def test_listener_errors_do_not_propagate(self) -> None:
        """Test that a failing listener does not stop the others."""
        tray = TrayStatus()
        failing = MagicMock(side_effect=RuntimeError("tray gone"))
        healthy = MagicMock()
        tray.register_listener(failing)
        tray.register_listener(healthy)

        tray.update(10, "Battery: 10%")

        healthy.assert_called_once()
