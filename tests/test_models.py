"""Tests for the iSolarCloud monitor data models."""

from typing import Any

import pytest

from isolarcloud_monitor.models import Credentials, Plant, PlantDevice

from .conftest import ACCESS_TOKEN, APP_KEY, AUTH_URL, SECRET_KEY

NOW_MS = 1_700_000_000_000


class TestCredentialsIsValid:
    """Tests for Credentials.is_valid."""

    def test_valid_when_token_present_and_expiry_in_future(self) -> None:
        """Test that a token expiring in the future is valid."""
        creds = Credentials(
            APP_KEY, SECRET_KEY, AUTH_URL, ACCESS_TOKEN, token_expiry=NOW_MS + 3_600_000
        )
        assert creds.is_valid(NOW_MS) is True

    def test_invalid_when_expired(self) -> None:
        """Test that an expired token is invalid."""
        creds = Credentials(
            APP_KEY, SECRET_KEY, AUTH_URL, ACCESS_TOKEN, token_expiry=NOW_MS - 1
        )
        assert creds.is_valid(NOW_MS) is False

    def test_invalid_when_expiry_equals_now(self) -> None:
        """Test that a token expiring exactly now is invalid."""
        creds = Credentials(
            APP_KEY, SECRET_KEY, AUTH_URL, ACCESS_TOKEN, token_expiry=NOW_MS
        )
        assert creds.is_valid(NOW_MS) is False

    @pytest.mark.parametrize(
        ("access_token", "token_expiry"),
        [("", NOW_MS + 1000), (ACCESS_TOKEN, 0)],
    )
    def test_invalid_when_token_fields_missing(
        self, access_token: str, token_expiry: int
    ) -> None:
        """Test that a missing token or expiry is invalid."""
        creds = Credentials(
            APP_KEY, SECRET_KEY, AUTH_URL, access_token, token_expiry=token_expiry
        )
        assert creds.is_valid(NOW_MS) is False


class TestCredentialsSerialization:
    """Tests for Credentials.to_dict and from_dict."""

    def test_to_dict_omits_empty_optional_fields(self) -> None:
        """Test that empty optional fields are left out of the stored record."""
        creds = Credentials(APP_KEY, SECRET_KEY, AUTH_URL)
        assert creds.to_dict() == {
            "appKey": APP_KEY,
            "secretKey": SECRET_KEY,
            "authUrl": AUTH_URL,
        }

    def test_to_dict_uses_stored_key_names(self, credentials: Credentials) -> None:
        """Test that the stored record uses camelCase key names."""
        data = credentials.to_dict()
        assert set(data) == {
            "appKey",
            "secretKey",
            "authUrl",
            "accessToken",
            "refreshToken",
            "tokenExpiry",
            "gatewayUrl",
        }

    def test_from_dict_accepts_partial_record(self) -> None:
        """Test that a partial record fills in defaults."""
        creds = Credentials.from_dict({"appKey": APP_KEY})
        assert creds.app_key == APP_KEY
        assert creds.secret_key == ""
        assert creds.access_token == ""
        assert creds.token_expiry == 0

    def test_from_dict_restores_to_dict_output(self, credentials: Credentials) -> None:
        """Test that a stored record loads back to equal credentials."""
        assert Credentials.from_dict(credentials.to_dict()) == credentials


class TestPlant:
    """Tests for the Plant model."""

    def test_from_dict_ignores_unknown_keys(
        self, sample_plant_record: dict[str, Any]
    ) -> None:
        """Test that unknown API keys are ignored."""
        plant = Plant.from_dict(sample_plant_record)
        assert plant.ps_id == 1234567
        assert plant.today_energy == "12.5"
        assert not hasattr(plant, "unexpected_field")

    def test_plant_is_frozen(self, sample_plant: Plant) -> None:
        """Test that plants cannot be modified."""
        with pytest.raises((AttributeError, TypeError)):
            sample_plant.ps_name = "Other"


class TestPlantDevice:
    """Tests for the PlantDevice model."""

    def test_display_key_prefers_uuid(self) -> None:
        """Test that the display key is the uuid when set."""
        assert PlantDevice(uuid=7, device_sn="SN7").display_key == 7

    def test_display_key_falls_back_to_serial(self) -> None:
        """Test that the display key falls back to the serial number."""
        assert PlantDevice(uuid=0, device_sn="SN7").display_key == "SN7"
