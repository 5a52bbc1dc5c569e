"""Session controller for the iSolarCloud monitor.

The controller is the application root: it resumes a stored session when the
access token is still valid, runs login and logout, loads the plant list and
tracks which plant is being viewed.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from . import api
from .const import (
    APP_TITLE,
    BATTERY_POLL_INTERVAL,
    ERROR_AUTH_FAILED,
    ERROR_AUTH_PENDING,
    ERROR_LOAD_PLANTS_PREFIX,
    ERROR_UNKNOWN,
)
from .views import LoginView, PlantDetailsView, PlantListView

if TYPE_CHECKING:
    from collections.abc import Callable

    from .client import ISolarCloudClient
    from .models import Credentials, Plant

_LOGGER = logging.getLogger(__name__)


class SessionState(Enum):
    """Top-level states of the application."""

    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    PLANT_SELECTED = "plant_selected"


def describe_error(err: BaseException) -> str:
    """Return the most useful text for an exception."""
    return str(err) or repr(err) or ERROR_UNKNOWN


class SessionController:
    """Root controller owning authentication and navigation state."""

    def __init__(
        self,
        client: ISolarCloudClient,
        clock: Callable[[], float] = time.time,
        poll_interval: float = BATTERY_POLL_INTERVAL,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Backend facade for remote operations.
            clock: Returns the current time in seconds since the epoch.
            poll_interval: Seconds between battery SOC polls.

        """
        self._client = client
        self._clock = clock
        self._poll_interval = poll_interval
        self._generation = 0
        self._navigation = 0
        self.is_authenticated = False
        self.is_loading = True
        self.error: str | None = None
        self.plants: list[Plant] = []
        self.selected_plant: Plant | None = None
        self.details_view: PlantDetailsView | None = None
        self.login_view = LoginView(self.async_login)

    @property
    def state(self) -> SessionState:
        if self.is_authenticated:
            if self.selected_plant is not None:
                return SessionState.PLANT_SELECTED
            return SessionState.AUTHENTICATED
        if self.is_loading:
            return SessionState.LOADING
        return SessionState.UNAUTHENTICATED

    @property
    def header_title(self) -> str:
        if self.selected_plant is not None:
            return self.selected_plant.ps_name
        return APP_TITLE

    @property
    def status_label(self) -> str:
        return "Connected" if self.is_authenticated else "Disconnected"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def async_check_auth(self) -> None:
        """Resume the stored session if its access token has not expired."""
        self.is_loading = True
        try:
            credentials = await self._client.async_get_stored_credentials()
            if credentials is not None and credentials.is_valid(self._now_ms()):
                _LOGGER.info("Resuming stored iSolarCloud session")
                self.is_authenticated = True
                await self.async_load_plants()
            else:
                _LOGGER.debug("No valid stored session")
        except Exception:
            _LOGGER.exception("Auth check failed")
        finally:
            self.is_loading = False

    async def async_login(self, credentials: Credentials | dict[str, Any]) -> None:
        """Authenticate with the submitted credentials and load plants."""
        self.is_loading = True
        self.error = None
        try:
            result = await self._client.async_authenticate(credentials)
            if result.authenticated:
                self.is_authenticated = True
                await self.async_load_plants()
            else:
                self.error = result.message or ERROR_AUTH_PENDING
        except (api.ISolarCloudApiClientError, httpx.RequestError) as err:
            _LOGGER.warning("Authentication failed: %s", err)
            self.error = str(err) or ERROR_AUTH_FAILED
        except Exception as err:
            _LOGGER.exception("Unexpected error during authentication")
            self.error = str(err) or ERROR_AUTH_FAILED
        finally:
            self.is_loading = False

    async def async_logout(self) -> None:
        """Log out and reset to the unauthenticated baseline.

        State is reset before any await; selections and loads still in
        flight see the logout and drop their results.
        """
        self._generation += 1
        self._navigation += 1
        self.is_authenticated = False
        self.is_loading = False
        self.error = None
        self.plants = []
        self.selected_plant = None
        try:
            await self._client.async_logout()
        except Exception:
            _LOGGER.exception("Failed to clear stored credentials")
        await self._async_close_details()

    async def async_load_plants(self) -> None:
        """Fetch the plant list; responses for a superseded load are dropped."""
        self._generation += 1
        generation = self._generation
        try:
            plants = await self._client.async_get_plant_list()
        except (api.ISolarCloudApiClientError, httpx.RequestError) as err:
            if self._discard_plant_failure(generation, err):
                return
            _LOGGER.warning("Failed to load plants: %s", err)
            self._set_plant_error(err)
            return
        except Exception as err:
            if self._discard_plant_failure(generation, err):
                return
            _LOGGER.exception("Unexpected error loading plants")
            self._set_plant_error(err)
            return

        if generation != self._generation:
            _LOGGER.debug("Discarding stale plant list")
            return
        self.plants = list(plants or [])
        _LOGGER.info("Plants loaded: %d", len(self.plants))

    def _discard_plant_failure(self, generation: int, err: Exception) -> bool:
        if generation == self._generation:
            return False
        _LOGGER.debug("Discarding stale plant list failure: %s", err)
        return True

    def _set_plant_error(self, err: Exception) -> None:
        self.error = ERROR_LOAD_PLANTS_PREFIX + describe_error(err)
        self.plants = []

    def find_plant(self, ps_id: int) -> Plant | None:
        return next((plant for plant in self.plants if plant.ps_id == ps_id), None)

    async def async_select_plant(self, plant: Plant) -> None:
        """Show the details of a plant and start its device list.

        Ignored when logged out. Any navigation or logout made while the
        previous details shut down supersedes this selection.
        """
        if not self.is_authenticated:
            _LOGGER.debug("Ignoring plant selection while logged out")
            return
        self._navigation += 1
        navigation = self._navigation
        await self._async_close_details()
        if navigation != self._navigation:
            _LOGGER.debug("Plant selection %s superseded", plant.ps_id)
            return

        self.selected_plant = plant
        self.details_view = PlantDetailsView(plant, self._client, self._poll_interval)
        await self.details_view.async_mount()

    async def async_clear_selection(self) -> None:
        """Navigate back to the plant list without refetching anything."""
        self._navigation += 1
        await self._async_close_details()
        self.selected_plant = None

    async def _async_close_details(self) -> None:
        if self.details_view is None:
            return
        details, self.details_view = self.details_view, None
        await details.async_unmount()

    def render(self) -> list[str]:
        if self.is_loading and not self.is_authenticated:
            return ["Loading..."]

        lines = [f"{self.header_title}  [{self.status_label}]"]
        if self.error:
            lines.append(f"! {self.error}")
        lines.append("")

        if not self.is_authenticated:
            lines.extend(self.login_view.render(self.is_loading))
        elif self.details_view is not None:
            lines.extend(self.details_view.render())
        else:
            lines.extend(PlantListView(self.plants).render())
        return lines
