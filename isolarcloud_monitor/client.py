"""Backend facade consumed by the session controller and views.

Owns the HTTP session, the in-memory credentials and the credential store,
and exposes the remote operations the UI layer calls.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from . import api, oauth
from .models import AuthResult, Credentials
from .storage import CredentialStore
from .tray import TrayStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import httpx

    from .models import Plant, PlantDevice, TokenData

_LOGGER = logging.getLogger(__name__)


class ISolarCloudClient:
    """Authenticated access to the iSolarCloud open API."""

    def __init__(
        self,
        store: CredentialStore | None = None,
        session: httpx.AsyncClient | None = None,
        tray: TrayStatus | None = None,
        authorize: Callable[
            [httpx.AsyncClient, Credentials], Awaitable[TokenData]
        ] = oauth.async_authorize,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the client.

        Args:
            store: Credential store; defaults to the user's config directory.
            session: HTTP client session; one with retries is created if None.
            tray: Tray status indicator fed by battery readings.
            authorize: Coroutine running the browser authorization flow.
            clock: Returns the current time in seconds since the epoch.

        """
        self.store = store or CredentialStore()
        self.session = session or api.create_session_client()
        self.tray = tray or TrayStatus()
        self._authorize = authorize
        self._clock = clock
        self._credentials: Credentials | None = None
        self._credentials_loaded = False

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    async def async_get_stored_credentials(self) -> Credentials | None:
        """Return the stored credentials, loading them on first use."""
        if self._credentials is None and not self._credentials_loaded:
            self._credentials = await asyncio.to_thread(self.store.load)
            self._credentials_loaded = True
        return self._credentials

    async def async_authenticate(
        self,
        credentials: Credentials | dict[str, Any],
    ) -> AuthResult:
        """Authorize in the browser, exchange the code and persist tokens.

        Args:
            credentials: Login form values, either as Credentials or in the
                stored JSON layout (appKey, secretKey, authUrl, gatewayUrl).

        Returns:
            AuthResult with the new token expiry on success.

        Raises:
            ISolarCloudApiAuthError: If authorization fails.
            ISolarCloudApiClientError: If the API request fails.
            OSError: If the credentials cannot be saved.

        """
        if isinstance(credentials, dict):
            credentials = Credentials.from_dict(credentials)
        self._credentials = credentials
        self._credentials_loaded = True

        _LOGGER.info(
            "Starting iSolarCloud authorization for app key %s",
            credentials.app_key,
        )
        token = await self._authorize(self.session, credentials)

        credentials.access_token = token.access_token
        credentials.refresh_token = token.refresh_token
        credentials.token_expiry = api.compute_token_expiry(
            token.expires_in, self._clock()
        )
        await asyncio.to_thread(self.store.save, credentials)

        _LOGGER.info("Authenticated; token valid until %d", credentials.token_expiry)
        return AuthResult(authenticated=True, token_expiry=credentials.token_expiry)

    async def async_logout(self) -> None:
        """Forget the in-memory credentials and delete the stored file."""
        self._credentials = None
        self._credentials_loaded = True
        await asyncio.to_thread(self.store.save, None)
        _LOGGER.info("Logged out of iSolarCloud")

    async def async_get_plant_list(self) -> list[Plant]:
        return await api.async_get_plant_list(self.session, self._credentials)

    async def async_get_device_list(self, ps_id: int) -> list[PlantDevice]:
        return await api.async_get_device_list(self.session, self._credentials, ps_id)

    async def async_get_device_point_data(
        self,
        device_type: int,
        ps_key: str,
        point_ids: list[int],
    ) -> list[dict[str, Any]]:
        return await api.async_get_device_point_data(
            self.session,
            self._credentials,
            device_type,
            ps_key,
            point_ids,
        )

    def update_tray_status(self, percent: int, title: str) -> None:
        """Push a battery reading to the tray without waiting on it."""
        self.tray.update(percent, title)

    async def async_close(self) -> None:
        """Close the HTTP session."""
        await self.session.aclose()
