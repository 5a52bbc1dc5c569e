"""View models for the iSolarCloud monitor.

Each view owns the state its screen keeps locally (loading flags,
errors, fetched data) and renders itself as plain text lines. Views that
fetch data expose ``async_mount``/``async_unmount`` so their owner controls
the lifetime of any background work.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from typing import TYPE_CHECKING, Any

import httpx
import voluptuous as vol

from . import api
from .const import (
    BATTERY_POLL_INTERVAL,
    DEFAULT_AUTH_URL,
    DEFAULT_GATEWAY,
    DEVELOPER_PORTAL_URL,
    DEVICE_FAULT_STATUS_NORMAL,
    DEVICE_ICON_DEFAULT,
    DEVICE_ICONS,
    DEVICE_TYPE_BATTERY,
    ERROR_LOAD_DEVICES,
    GATEWAYS,
    PLANT_FAULT_STATUS_NORMAL,
    PLANT_ONLINE,
    PLANT_TYPE_UNKNOWN,
    PLANT_TYPES,
    POINT_BATTERY_SOC,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .client import ISolarCloudClient
    from .models import Plant, PlantDevice

_LOGGER = logging.getLogger(__name__)

FETCH_ERRORS = (api.ISolarCloudApiClientError, httpx.RequestError)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves going up."""
    return math.floor(value + 0.5)


def plant_type_label(ps_type: int) -> str:
    return PLANT_TYPES.get(ps_type, PLANT_TYPE_UNKNOWN)


def plant_status_label(ps_fault_status: int) -> str:
    return "Normal" if ps_fault_status == PLANT_FAULT_STATUS_NORMAL else "Fault"


def plant_card_status_label(ps_fault_status: int) -> str:
    return "Normal" if ps_fault_status == PLANT_FAULT_STATUS_NORMAL else "Attention"


def online_label(online_status: int) -> str:
    return "Online" if online_status == PLANT_ONLINE else "Offline"


def install_date_label(install_date: str | None) -> str:
    """Return the date part of an install timestamp, or "-" when absent."""
    if not install_date:
        return "-"
    return install_date.split(" ")[0] or "-"


def device_icon(device_type: int) -> str:
    return DEVICE_ICONS.get(device_type, DEVICE_ICON_DEFAULT)


def device_status_label(dev_fault_status: int) -> str:
    return "Normal" if dev_fault_status == DEVICE_FAULT_STATUS_NORMAL else "Fault"


def parse_soc(value: Any) -> float | None:
    """Convert a raw state-of-charge point value to a one-decimal percentage.

    Returns:
        The percentage, or None if the value is not a finite number.

    """
    try:
        raw = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(raw):
        return None
    return round_half_up(raw * 1000) / 10


def format_percent(value: float) -> str:
    return f"{value:g}%"


def _gateway_url(value: str) -> str:
    if value in GATEWAYS:
        return GATEWAYS[value]
    if value in GATEWAYS.values():
        return value
    invalid_gateway = f"unknown gateway: {value}"
    raise vol.Invalid(invalid_gateway)


_NON_EMPTY = vol.All(str, vol.Length(min=1))

LOGIN_SCHEMA = vol.Schema(
    {
        vol.Required("app_key"): _NON_EMPTY,
        vol.Required("secret_key"): _NON_EMPTY,
        vol.Required("auth_url", default=DEFAULT_AUTH_URL): _NON_EMPTY,
        vol.Required("gateway", default=DEFAULT_GATEWAY): vol.All(str, _gateway_url),
    }
)


class LoginView:
    """Login form collecting the API credentials and the regional gateway."""

    def __init__(
        self,
        on_login: Callable[[dict[str, str]], Awaitable[None]],
    ) -> None:
        self._on_login = on_login
        self.app_key = ""
        self.secret_key = ""
        self.auth_url = DEFAULT_AUTH_URL
        self.gateway = DEFAULT_GATEWAY

    def values(self) -> dict[str, str]:
        """Validate the form and return credentials in the stored layout.

        Raises:
            vol.Invalid: If a required field is empty or the gateway unknown.

        """
        data = LOGIN_SCHEMA(
            {
                "app_key": self.app_key,
                "secret_key": self.secret_key,
                "auth_url": self.auth_url,
                "gateway": self.gateway,
            }
        )
        return {
            "appKey": data["app_key"],
            "secretKey": data["secret_key"],
            "authUrl": data["auth_url"],
            "gatewayUrl": data["gateway"],
        }

    @staticmethod
    def can_submit(is_loading: bool) -> bool:
        return not is_loading

    @staticmethod
    def submit_label(is_loading: bool) -> str:
        return "Authenticating..." if is_loading else "Authenticate"

    async def async_submit(self, is_loading: bool = False) -> bool:
        """Validate and hand the credentials to the owner.

        Returns:
            True if the form was submitted, False if blocked.

        Raises:
            vol.Invalid: If the form does not validate.

        """
        if not self.can_submit(is_loading):
            return False
        await self._on_login(self.values())
        return True

    def render(self, is_loading: bool = False) -> list[str]:
        gateway = next(
            (name for name, url in GATEWAYS.items() if self.gateway in (name, url)),
            self.gateway,
        )
        return [
            "Connect to Sungrow",
            f"  App Key: {self.app_key}",
            f"  Secret Key: {'*' * len(self.secret_key)}",
            f"  Authorization URL: {self.auth_url}",
            f"  Country / Gateway: {gateway}",
            f"  [{self.submit_label(is_loading)}]",
            f"Get your API credentials from the Sungrow Developer Portal: "
            f"{DEVELOPER_PORTAL_URL}",
        ]


class PlantListView:
    """Grid of plant cards."""

    def __init__(self, plants: list[Plant]) -> None:
        self.plants = plants

    @staticmethod
    def card(plant: Plant) -> list[str]:
        return [
            plant.ps_name,
            f"  Location: {plant.ps_location}",
            f"  Status: {plant_card_status_label(plant.ps_fault_status)}",
            f"  Daily Yield: {plant.today_energy or '0'} kWh",
            f"  [View Details: {plant.ps_id}]",
        ]

    def render(self) -> list[str]:
        lines = []
        for plant in self.plants:
            lines.extend(self.card(plant))
        if not self.plants:
            lines.append("No plants found.")
        return lines


class DeviceView:
    """Card for a generic plant device."""

    def __init__(self, device: PlantDevice) -> None:
        self.device = device

    @property
    def key(self) -> int | str:
        return self.device.display_key

    @property
    def icon(self) -> str:
        return device_icon(self.device.device_type)

    @property
    def status(self) -> str:
        return device_status_label(self.device.dev_fault_status)

    @property
    def meta(self) -> str:
        return f"{self.device.type_name} | {self.device.ps_key}"

    def render(self) -> list[str]:
        return [
            f"[{self.icon}] {self.device.device_name}  {self.status}",
            f"    {self.meta}",
        ]


class BatteryDeviceView(DeviceView):
    """Battery card that polls state-of-charge while mounted."""

    def __init__(
        self,
        device: PlantDevice,
        client: ISolarCloudClient,
        poll_interval: float = BATTERY_POLL_INTERVAL,
    ) -> None:
        super().__init__(device)
        self._client = client
        self._poll_interval = poll_interval
        self._task: asyncio.Task[None] | None = None
        self._reading_done = asyncio.Event()
        self.soc: float | None = None
        self.is_loading = True

    @property
    def icon(self) -> str:
        return device_icon(DEVICE_TYPE_BATTERY)

    @property
    def mounted(self) -> bool:
        return self._task is not None

    async def async_refresh(self) -> None:
        """Fetch state-of-charge once and push it to the tray.

        Failures are logged; the previous reading stays on display.
        """
        try:
            data = await self._client.async_get_device_point_data(
                self.device.device_type,
                self.device.ps_key,
                [POINT_BATTERY_SOC],
            )
            if data:
                soc = parse_soc(data[0].get(f"p{POINT_BATTERY_SOC}"))
                if soc is not None:
                    self.soc = soc
                    percent = round_half_up(soc)
                    title = f"Battery: {percent}%"
                    _LOGGER.debug("Updating tray status: %s", title)
                    self._client.update_tray_status(percent, title)
        except FETCH_ERRORS as err:
            _LOGGER.warning(
                "Failed to fetch battery SOC for %s: %s", self.device.ps_key, err
            )
        except Exception:
            _LOGGER.exception("Unexpected error fetching battery SOC")
        finally:
            self.is_loading = False
            self._reading_done.set()

    async def async_wait_for_reading(self) -> None:
        """Wait until the first SOC fetch has finished, successful or not."""
        await self._reading_done.wait()

    async def _async_poll(self) -> None:
        while True:
            await self.async_refresh()
            await asyncio.sleep(self._poll_interval)

    async def async_mount(self) -> None:
        """Start polling: once now, then every poll interval."""
        if self._task is not None:
            return
        _LOGGER.debug("Starting SOC polling for %s", self.device.ps_key)
        self._task = asyncio.create_task(self._async_poll())

    async def async_unmount(self) -> None:
        """Stop polling; safe to call more than once."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _LOGGER.debug("Stopped SOC polling for %s", self.device.ps_key)

    def render(self) -> list[str]:
        if self.is_loading:
            reading = "  Loading..."
        elif self.soc is not None:
            reading = f"  {format_percent(self.soc)}"
        else:
            reading = ""
        return [
            f"[{self.icon}] {self.device.device_name}{reading}  {self.status}",
            f"    {self.meta}",
        ]


class DeviceListView:
    """Devices of one plant, with battery cards for battery devices."""

    def __init__(
        self,
        client: ISolarCloudClient,
        ps_id: int,
        poll_interval: float = BATTERY_POLL_INTERVAL,
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval
        self._generation = 0
        self.ps_id = ps_id
        self.devices: list[PlantDevice] = []
        self.cards: list[DeviceView] = []
        self.is_loading = False
        self.error: str | None = None

    @property
    def battery_cards(self) -> list[BatteryDeviceView]:
        return [card for card in self.cards if isinstance(card, BatteryDeviceView)]

    def _build_card(
        self,
        device: PlantDevice,
        previous: dict[int | str, BatteryDeviceView],
    ) -> DeviceView:
        if device.device_type != DEVICE_TYPE_BATTERY:
            return DeviceView(device)
        card = previous.pop(device.display_key, None)
        if card is None:
            return BatteryDeviceView(device, self._client, self._poll_interval)
        card.device = device
        return card

    async def _async_stop_cards(
        self,
        cards: list[DeviceView] | None = None,
    ) -> None:
        if cards is None:
            cards, self.cards = self.cards, []
        for card in cards:
            if isinstance(card, BatteryDeviceView):
                await card.async_unmount()

    async def _async_show(self, devices: list[PlantDevice], generation: int) -> None:
        """Replace the cards, keeping battery cards whose key survives."""
        previous = {card.key: card for card in self.battery_cards}
        cards = [self._build_card(device, previous) for device in devices]
        stale = [card for card in self.cards if card not in cards]

        self.devices = devices
        self.cards = cards
        await self._async_stop_cards(stale)
        if generation != self._generation:
            _LOGGER.debug("Device list for plant %s unmounted", self.ps_id)
            return

        for card in self.battery_cards:
            await card.async_mount()

    async def async_load(self) -> None:
        """Fetch the device list; responses for a superseded load are dropped."""
        if not self.ps_id:
            return

        self._generation += 1
        generation = self._generation
        ps_id = self.ps_id
        self.is_loading = True
        self.error = None

        try:
            devices = await self._client.async_get_device_list(ps_id)
        except FETCH_ERRORS as err:
            error = str(err) or ERROR_LOAD_DEVICES
            _LOGGER.warning("Failed to load devices for plant %s: %s", ps_id, err)
        except Exception as err:
            error = str(err) or ERROR_LOAD_DEVICES
            _LOGGER.exception("Failed to load devices for plant %s", ps_id)
        else:
            if generation != self._generation:
                _LOGGER.debug("Discarding stale device list for plant %s", ps_id)
                return
            self.is_loading = False
            await self._async_show(list(devices or []), generation)
            return

        if generation != self._generation:
            return
        self.is_loading = False
        self.error = error
        await self._async_show([], generation)

    async def async_set_ps_id(self, ps_id: int) -> None:
        """Point the list at another plant, reloading if it changed."""
        if ps_id == self.ps_id:
            return
        self.ps_id = ps_id
        await self.async_load()

    async def async_unmount(self) -> None:
        """Drop in-flight loads and stop every battery poller."""
        self._generation += 1
        await self._async_stop_cards()

    def render(self) -> list[str]:
        if self.is_loading:
            return ["Finding devices..."]
        if self.error:
            return [self.error]

        lines = [f"Devices ({len(self.devices)})"]
        if not self.cards:
            lines.append("No devices found for this plant.")
        for card in self.cards:
            lines.extend(card.render())
        return lines


class PlantDetailsView:
    """Attribute table for one plant plus its device list."""

    def __init__(
        self,
        plant: Plant,
        client: ISolarCloudClient,
        poll_interval: float = BATTERY_POLL_INTERVAL,
    ) -> None:
        self.plant = plant
        self.device_list = DeviceListView(client, plant.ps_id, poll_interval)

    def rows(self) -> list[tuple[str, str]]:
        plant = self.plant
        return [
            ("ID", str(plant.ps_id)),
            ("Name", plant.ps_name),
            ("Location", plant.ps_location),
            ("Type", plant_type_label(plant.ps_type)),
            ("Status", plant_status_label(plant.ps_fault_status)),
            ("Online", online_label(plant.online_status)),
            ("Installed", install_date_label(plant.install_date)),
        ]

    async def async_mount(self) -> None:
        await self.device_list.async_load()

    async def async_unmount(self) -> None:
        await self.device_list.async_unmount()

    def render(self) -> list[str]:
        lines = [f"{label}: {value}" for label, value in self.rows()]
        lines.append("")
        lines.extend(self.device_list.render())
        return lines
