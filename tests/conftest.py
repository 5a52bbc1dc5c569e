"""Pytest configuration and fixtures for iSolarCloud monitor tests."""

import time
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from isolarcloud_monitor.client import ISolarCloudClient
from isolarcloud_monitor.models import Credentials, Plant, PlantDevice
from isolarcloud_monitor.tray import TrayStatus

APP_KEY = "test_app_key"
SECRET_KEY = "test_secret_key"
ACCESS_TOKEN = "test_access_token"
REFRESH_TOKEN = "test_refresh_token"
GATEWAY_URL = "https://gateway.isolarcloud.eu"
AUTH_URL = "https://auapi.isolarcloud.com:443/openapi/apiManage/token"


def now_ms() -> int:
    return int(time.time() * 1000)


@pytest.fixture
def credentials() -> Credentials:
    """Fixture providing credentials with an access token valid for one hour."""
    return Credentials(
        app_key=APP_KEY,
        secret_key=SECRET_KEY,
        auth_url=AUTH_URL,
        access_token=ACCESS_TOKEN,
        refresh_token=REFRESH_TOKEN,
        token_expiry=now_ms() + 3_600_000,
        gateway_url=GATEWAY_URL,
    )


@pytest.fixture
def sample_plant_record() -> dict[str, Any]:
    """Fixture providing a plant record as returned by the API."""
    return {
        "ps_id": 1234567,
        "ps_name": "Home Plant",
        "description": None,
        "ps_type": 5,
        "online_status": 1,
        "valid_flag": 1,
        "grid_connection_status": 1,
        "install_date": "2023-04-12 10:11:12",
        "ps_location": "Sydney NSW",
        "latitude": -33.86,
        "longitude": 151.2,
        "ps_fault_status": 3,
        "connect_type": 1,
        "update_time": "2024-01-01 12:00:00",
        "ps_current_time_zone": "GMT+10",
        "grid_connection_time": None,
        "build_status": 2,
        "today_energy": "12.5",
        "unexpected_field": "ignored",
    }


@pytest.fixture
def sample_plant(sample_plant_record: dict[str, Any]) -> Plant:
    return Plant.from_dict(sample_plant_record)


@pytest.fixture
def sample_inverter() -> PlantDevice:
    return PlantDevice(
        uuid=101,
        ps_key="1234567_1_1_1",
        device_sn="INV001",
        device_name="Inverter",
        device_type=1,
        type_name="Inverter",
        dev_fault_status=4,
        ps_id=1234567,
    )


@pytest.fixture
def sample_battery() -> PlantDevice:
    return PlantDevice(
        uuid=102,
        ps_key="1234567_43_1_1",
        device_sn="BAT001",
        device_name="Battery",
        device_type=43,
        type_name="Battery",
        dev_fault_status=4,
        ps_id=1234567,
    )


@pytest.fixture
def sample_plant_list_response(sample_plant_record: dict[str, Any]) -> dict:
    """Fixture providing a sample plant list API response."""
    return {
        "req_serial_num": "abc",
        "result_code": "1",
        "result_msg": "success",
        "result_data": {"pageList": [sample_plant_record], "rowCount": 1},
    }


@pytest.fixture
def sample_device_list_response() -> dict:
    """Fixture providing a sample device list API response."""
    return {
        "result_code": "1",
        "result_msg": "success",
        "result_data": {
            "pageList": [
                {
                    "uuid": 101,
                    "ps_key": "1234567_1_1_1",
                    "device_sn": "INV001",
                    "device_name": "Inverter",
                    "device_type": 1,
                    "type_name": "Inverter",
                    "dev_fault_status": 4,
                    "ps_id": 1234567,
                },
                {
                    "uuid": 102,
                    "ps_key": "1234567_43_1_1",
                    "device_sn": "BAT001",
                    "device_name": "Battery",
                    "device_type": 43,
                    "type_name": "Battery",
                    "dev_fault_status": 4,
                    "ps_id": 1234567,
                },
            ],
        },
    }


@pytest.fixture
def sample_point_data_response() -> dict:
    """Fixture providing a sample real-time point data API response."""
    return {
        "result_code": "1",
        "result_msg": "success",
        "result_data": {
            "device_point_list": [
                {"device_point": {"ps_key": "1234567_43_1_1", "p58604": "0.4523"}},
            ],
        },
    }


@pytest.fixture
def sample_token_response() -> dict:
    """Fixture providing a sample token exchange API response."""
    return {
        "result_code": "1",
        "result_msg": "success",
        "result_data": {
            "access_token": ACCESS_TOKEN,
            "token_type": "bearer",
            "refresh_token": REFRESH_TOKEN,
            "expires_in": 172800,
            "auth_ps_list": ["1234567"],
            "auth_user": 42,
        },
    }


@pytest.fixture
def mock_client() -> Mock:
    """Create a mock backend client with async operations."""
    client = Mock(spec=ISolarCloudClient)
    client.tray = TrayStatus()
    client.async_get_stored_credentials = AsyncMock(return_value=None)
    client.async_authenticate = AsyncMock()
    client.async_logout = AsyncMock()
    client.async_get_plant_list = AsyncMock(return_value=[])
    client.async_get_device_list = AsyncMock(return_value=[])
    client.async_get_device_point_data = AsyncMock(return_value=[])
    client.update_tray_status = Mock()
    return client
