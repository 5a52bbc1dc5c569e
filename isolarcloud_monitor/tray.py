"""System-tray status indicator for the iSolarCloud monitor.

The tray itself belongs to the host; this module keeps the latest battery
reading, works out the badge to draw, and hands updates to whoever listens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .const import (
    APP_TITLE,
    BADGE_COLOR_HIGH,
    BADGE_COLOR_LOW,
    BADGE_COLOR_MEDIUM,
    BADGE_LOW_THRESHOLD,
    BADGE_MEDIUM_THRESHOLD,
)

if TYPE_CHECKING:
    from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrayBadge:
    """Pie badge drawn over the tray icon."""

    color: tuple[int, int, int]
    fill: float


@dataclass(frozen=True)
class TrayUpdate:
    """A title and badge pushed to the tray."""

    percent: int
    title: str
    badge: TrayBadge


def badge_color(percent: int) -> tuple[int, int, int]:
    """Return the RGB colour for a battery percentage."""
    if percent <= BADGE_LOW_THRESHOLD:
        return BADGE_COLOR_LOW
    if percent <= BADGE_MEDIUM_THRESHOLD:
        return BADGE_COLOR_MEDIUM
    return BADGE_COLOR_HIGH


def build_badge(percent: int) -> TrayBadge:
    """Build the badge for a battery percentage."""
    fill = min(max(percent / 100.0, 0.0), 1.0)
    return TrayBadge(color=badge_color(percent), fill=fill)


class TrayStatus:
    """Holds the current tray title and notifies registered listeners."""

    def __init__(self) -> None:
        self.title = APP_TITLE
        self.percent: int | None = None
        self._listeners: list[Callable[[TrayUpdate], None]] = []

    def register_listener(
        self,
        listener: Callable[[TrayUpdate], None],
    ) -> Callable[[], None]:
        """Register a callback for tray updates.

        Returns:
            A function to unregister the callback.

        """
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    def update(self, percent: int, title: str) -> None:
        """Record a new battery reading and notify listeners.

        Listener failures are logged and never reach the caller.
        """
        _LOGGER.debug("Tray status update: %d%%, %s", percent, title)
        self.percent = percent
        self.title = title
        update = TrayUpdate(percent=percent, title=title, badge=build_badge(percent))

        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                _LOGGER.exception("Error in tray update listener")
