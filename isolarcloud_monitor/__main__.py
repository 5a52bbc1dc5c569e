"""Terminal front end for the iSolarCloud monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import voluptuous as vol

from .client import ISolarCloudClient
from .const import (
    BATTERY_POLL_INTERVAL,
    DEFAULT_AUTH_URL,
    DEFAULT_GATEWAY,
    GATEWAYS,
    LOG_LEVEL_ENV,
)
from .session import SessionController
from .tray import TrayUpdate

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_AUTHENTICATED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="isolarcloud-monitor",
        description="Show Sungrow iSolarCloud plants, devices and battery charge.",
    )
    parser.add_argument("--app-key", help="iSolarCloud application key")
    parser.add_argument("--secret-key", help="iSolarCloud secret key")
    parser.add_argument("--auth-url", default=DEFAULT_AUTH_URL)
    parser.add_argument("--gateway", choices=list(GATEWAYS), default=DEFAULT_GATEWAY)
    parser.add_argument("--plant", type=int, metavar="PS_ID", help="show one plant")
    parser.add_argument(
        "--watch",
        action="store_true",
        help="keep polling battery charge until interrupted",
    )
    parser.add_argument("--logout", action="store_true", help="forget stored tokens")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else os.environ.get(LOG_LEVEL_ENV, "WARNING")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print(lines: list[str]) -> None:
    print("\n".join(lines))


def _log_tray_update(update: TrayUpdate) -> None:
    _LOGGER.info(
        "Tray: %s (badge %s, %.0f%%)",
        update.title,
        update.badge.color,
        update.badge.fill * 100,
    )


async def async_main(args: argparse.Namespace) -> int:
    client = ISolarCloudClient()
    client.tray.register_listener(_log_tray_update)
    controller = SessionController(client)

    try:
        if args.logout:
            await controller.async_logout()
            print("Logged out.")
            return EXIT_OK

        await controller.async_check_auth()

        if not controller.is_authenticated and args.app_key and args.secret_key:
            login = controller.login_view
            login.app_key = args.app_key
            login.secret_key = args.secret_key
            login.auth_url = args.auth_url
            login.gateway = args.gateway
            try:
                await login.async_submit(controller.is_loading)
            except vol.Invalid as err:
                print(f"Invalid login details: {err}", file=sys.stderr)
                return EXIT_USAGE

        if not controller.is_authenticated:
            _print(controller.render())
            return EXIT_NOT_AUTHENTICATED

        if args.plant is not None:
            plant = controller.find_plant(args.plant)
            if plant is None:
                print(f"Plant {args.plant} not found.", file=sys.stderr)
                return EXIT_USAGE
            await controller.async_select_plant(plant)
            for card in controller.details_view.device_list.battery_cards:
                await card.async_wait_for_reading()

        _print(controller.render())

        while args.watch and controller.details_view is not None:
            await asyncio.sleep(BATTERY_POLL_INTERVAL)
            print()
            _print(controller.render())

        return EXIT_OK
    finally:
        await controller.async_clear_selection()
        await client.async_close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
