"""Tests for the terminal front end."""

from collections.abc import Iterator
from unittest.mock import Mock, patch

import pytest

from isolarcloud_monitor import __main__ as cli
from isolarcloud_monitor.models import AuthResult, Credentials, Plant, PlantDevice


@pytest.fixture
def patched_client(mock_client: Mock) -> Iterator[Mock]:
    with patch.object(cli, "ISolarCloudClient", return_value=mock_client):
        yield mock_client


class TestBuildParser:
    """Tests for the argument parser."""

    def test_defaults(self) -> None:
        """Test that the parser defaults to the Australian gateway."""
        args = cli.build_parser().parse_args([])
        assert args.gateway == "Australia"
        assert args.plant is None
        assert args.watch is False

    def test_rejects_unknown_gateway(self) -> None:
        """Test that an unknown gateway name is rejected."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--gateway", "Atlantis"])


class TestAsyncMain:
    """Tests for async_main."""

    @pytest.mark.asyncio
    async def test_logout(
        self, patched_client: Mock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that the logout flag logs out and exits cleanly."""
        args = cli.build_parser().parse_args(["--logout"])

        assert await cli.async_main(args) == cli.EXIT_OK

        patched_client.async_logout.assert_awaited_once()
        patched_client.async_close.assert_awaited_once()
        assert "Logged out." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_not_authenticated_shows_login(
        self, patched_client: Mock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that a missing session prints the login form."""
        args = cli.build_parser().parse_args([])

        assert await cli.async_main(args) == cli.EXIT_NOT_AUTHENTICATED

        assert "Connect to Sungrow" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_login_with_keys(
        self,
        patched_client: Mock,
        sample_plant: Plant,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test that passing keys logs in and lists the plants."""
        patched_client.async_authenticate.return_value = AuthResult(
            authenticated=True
        )
        patched_client.async_get_plant_list.return_value = [sample_plant]
        args = cli.build_parser().parse_args(
            ["--app-key", "key", "--secret-key", "secret", "--gateway", "Europe"]
        )

        assert await cli.async_main(args) == cli.EXIT_OK

        submitted = patched_client.async_authenticate.call_args.args[0]
        assert submitted["gatewayUrl"] == "https://gateway.isolarcloud.eu"
        assert "Home Plant" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_plant_details_wait_for_battery(
        self,
        patched_client: Mock,
        credentials: Credentials,
        sample_plant: Plant,
        sample_battery: PlantDevice,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test that plant details print after the battery reading arrives."""
        patched_client.async_get_stored_credentials.return_value = credentials
        patched_client.async_get_plant_list.return_value = [sample_plant]
        patched_client.async_get_device_list.return_value = [sample_battery]
        patched_client.async_get_device_point_data.return_value = [
            {"p58604": "0.4523"}
        ]
        args = cli.build_parser().parse_args(["--plant", "1234567"])

        assert await cli.async_main(args) == cli.EXIT_OK

        out = capsys.readouterr().out
        assert "Type: Residential Storage" in out
        assert "[battery] Battery  45.2%  Normal" in out
        patched_client.update_tray_status.assert_called_with(45, "Battery: 45%")

    @pytest.mark.asyncio
    async def test_unknown_plant(
        self,
        patched_client: Mock,
        credentials: Credentials,
    ) -> None:
        """Test that an unknown plant id is a usage error."""
        patched_client.async_get_stored_credentials.return_value = credentials
        args = cli.build_parser().parse_args(["--plant", "42"])

        assert await cli.async_main(args) == cli.EXIT_USAGE
