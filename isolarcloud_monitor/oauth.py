"""OAuth authorization-code flow for the iSolarCloud open API.

The user authorizes the application in a browser; iSolarCloud redirects to a
short-lived listener on localhost which captures the authorization code.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import TYPE_CHECKING

import httpx
from aiohttp import web

from . import api
from .const import (
    CALLBACK_PATH,
    CALLBACK_PORT_RANGE,
    CALLBACK_SHUTDOWN_TIMEOUT,
    CALLBACK_TIMEOUT,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import Credentials, TokenData

_LOGGER = logging.getLogger(__name__)

CALLBACK_BIND_HOST = "127.0.0.1"
CALLBACK_REDIRECT_HOST = "localhost"

SUCCESS_PAGE = """
<html>
<head><title>Authentication Successful</title></head>
<body style="font-family: sans-serif; text-align: center; margin-top: 20vh;">
    <h1>Authentication Successful</h1>
    <p>You can close this window and return to the app.</p>
</body>
</html>
"""


def build_authorize_url(auth_url: str, redirect_url: str) -> str:
    """Add the redirect URL to the authorization URL's query string.

    Raises:
        ISolarCloudApiClientError: If the authorization URL is invalid.

    """
    try:
        url = httpx.URL(auth_url)
    except httpx.InvalidURL as err:
        error_message = f"invalid auth URL: {err}"
        raise api.ISolarCloudApiClientError(error_message) from err

    if not url.scheme or not url.host:
        error_message = f"invalid auth URL: {auth_url!r}"
        raise api.ISolarCloudApiClientError(error_message)

    return str(url.copy_merge_params({"redirectUrl": redirect_url}))


class OAuthCallbackServer:
    """Local HTTP listener that receives the authorization code."""

    def __init__(self, host: str = CALLBACK_BIND_HOST) -> None:
        self._host = host
        self._runner: web.AppRunner | None = None
        self._code: asyncio.Future[str] | None = None
        self.port: int | None = None

    @property
    def redirect_url(self) -> str:
        """Return the redirect URL pointing at this listener."""
        return f"http://{CALLBACK_REDIRECT_HOST}:{self.port}{CALLBACK_PATH}"

    async def async_start(self) -> int:
        """Bind the first free port in the callback range.

        Returns:
            The bound port.

        Raises:
            ISolarCloudApiClientError: If every port in the range is taken.

        """
        self._code = asyncio.get_running_loop().create_future()

        app = web.Application()
        app.router.add_get(CALLBACK_PATH, self._handle_callback)
        runner = web.AppRunner(app)
        await runner.setup()

        for port in CALLBACK_PORT_RANGE:
            site = web.TCPSite(runner, self._host, port)
            try:
                await site.start()
            except OSError:
                _LOGGER.debug("Callback port %d unavailable", port)
                continue
            self._runner = runner
            self.port = port
            _LOGGER.debug("OAuth callback listening on %s", self.redirect_url)
            return port

        await runner.cleanup()
        error_message = (
            f"no available ports found (tried {CALLBACK_PORT_RANGE.start}"
            f"-{CALLBACK_PORT_RANGE.stop - 1})"
        )
        raise api.ISolarCloudApiClientError(error_message)

    async def _handle_callback(self, request: web.Request) -> web.Response:
        code = request.query.get("code")
        if not code:
            _LOGGER.warning("OAuth callback received without a code")
            no_code = "no authorization code received"
            self._resolve(exception=api.ISolarCloudApiAuthError(no_code))
            return web.Response(
                status=400,
                text="Authentication failed: no code received",
            )

        self._resolve(code=code)
        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    def _resolve(
        self,
        code: str | None = None,
        exception: Exception | None = None,
    ) -> None:
        if self._code is None or self._code.done():
            return
        if exception is not None:
            self._code.set_exception(exception)
        else:
            self._code.set_result(code)

    async def async_wait_for_code(self, timeout: float = CALLBACK_TIMEOUT) -> str:
        """Wait for the browser redirect and return the authorization code.

        Raises:
            ISolarCloudApiClientError: On timeout.
            ISolarCloudApiAuthError: If the callback carried no code.

        """
        if self._code is None:
            not_started = "callback server not started"
            raise api.ISolarCloudApiClientError(not_started)
        try:
            return await asyncio.wait_for(asyncio.shield(self._code), timeout)
        except TimeoutError as err:
            timeout_error = "authentication timeout"
            raise api.ISolarCloudApiClientError(timeout_error) from err

    async def async_stop(self) -> None:
        """Shut the listener down."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        try:
            await asyncio.wait_for(runner.cleanup(), CALLBACK_SHUTDOWN_TIMEOUT)
        except TimeoutError:
            _LOGGER.warning("Timed out shutting down OAuth callback listener")
        if self._code is not None and not self._code.done():
            self._code.cancel()
        _LOGGER.debug("OAuth callback listener stopped")


async def async_authorize(
    session: httpx.AsyncClient,
    credentials: Credentials,
    open_url: Callable[[str], object] = webbrowser.open,
    timeout: float = CALLBACK_TIMEOUT,
) -> TokenData:
    """Run the full browser authorization and exchange the code for tokens.

    Args:
        session: HTTP client session.
        credentials: Application credentials entered at login.
        open_url: Callable that opens the authorization URL for the user.
        timeout: Seconds to wait for the browser redirect.

    Returns:
        Parsed token payload.

    Raises:
        ISolarCloudApiAuthError: If authorization fails.
        ISolarCloudApiClientError: If the listener or API request fails.

    """
    server = OAuthCallbackServer()
    await server.async_start()
    try:
        redirect_url = server.redirect_url
        authorize_url = build_authorize_url(credentials.auth_url, redirect_url)
        _LOGGER.info("Opening browser for iSolarCloud authorization")
        open_url(authorize_url)
        code = await server.async_wait_for_code(timeout)
    finally:
        await server.async_stop()

    return await api.async_exchange_code(session, credentials, code, redirect_url)
