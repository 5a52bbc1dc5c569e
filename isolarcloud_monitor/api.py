"""API client for the Sungrow iSolarCloud open API.

This module provides functions to interact with the iSolarCloud API,
including token exchange, plant and device listing, and real-time device
point queries.
"""

import logging
import time
from typing import Any

import httpx
from httpx_retries import Retry, RetryTransport

from .const import (
    DEFAULT_GATEWAY_URL,
    DEVICE_LIST_PATH,
    DEVICE_POINT_PATH,
    HTTP_TIMEOUT,
    PAGE_SIZE,
    PLANT_LIST_PATH,
    RESULT_CODE_SUCCESS,
    RETRY_BACKOFF_FACTOR,
    RETRY_TOTAL,
    TOKEN_PATH,
)
from .models import Credentials, Plant, PlantDevice, TokenData

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401


class ISolarCloudApiClientError(Exception):
    """Base exception for iSolarCloud API client errors."""


class ISolarCloudApiAuthError(ISolarCloudApiClientError):
    """Exception raised for authentication errors."""


def create_headers(
    secret_key: str,
    access_token: str | None = None,
) -> dict[str, str]:
    """Create HTTP headers for iSolarCloud API requests.

    Args:
        secret_key: Application secret sent as the access key header.
        access_token: Optional OAuth access token sent as a bearer token.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {
        "Content-Type": "application/json",
        "x-access-key": secret_key,
    }
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def gateway_url_for(credentials: Credentials) -> str:
    """Return the gateway base URL, falling back to the Australian gateway."""
    return (credentials.gateway_url or DEFAULT_GATEWAY_URL).rstrip("/")


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates authentication error."""
    return status == HTTP_UNAUTHORIZED


def is_api_error(data: dict[str, Any]) -> bool:
    """Check if an API envelope indicates an error.

    Args:
        data: API response data dictionary.

    Returns:
        True if result_code is anything other than "1", False otherwise.

    """
    return str(data.get("result_code")) != RESULT_CODE_SUCCESS


def validate_response(response: httpx.Response) -> dict[str, Any]:
    """Validate HTTP response and return the parsed envelope.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON envelope from response.

    Raises:
        ISolarCloudApiAuthError: If authentication error is detected.
        ISolarCloudApiClientError: If API error is detected.

    """
    _validate_http_status(response)
    try:
        data = response.json()
    except ValueError as err:
        error_message = f"Invalid JSON response: {err}"
        raise ISolarCloudApiClientError(error_message) from err
    _validate_api_status(data)
    return data


def _validate_http_status(response: httpx.Response) -> None:
    if not is_http_error(response.status_code):
        return

    if is_auth_error(response.status_code):
        auth_error = "Authentication error"
        raise ISolarCloudApiAuthError(auth_error)

    client_error = f"Request failed: {response.status_code}"
    raise ISolarCloudApiClientError(client_error)


def _validate_api_status(data: dict[str, Any]) -> None:
    if not is_api_error(data):
        return

    error_message = f"API error: {data.get('result_msg', 'Unknown API error')}"
    raise ISolarCloudApiClientError(error_message)


def _require_token(credentials: Credentials | None) -> Credentials:
    if credentials is None or not credentials.access_token:
        not_authenticated = "not authenticated"
        raise ISolarCloudApiAuthError(not_authenticated)
    return credentials


def _result_data(data: dict[str, Any]) -> dict[str, Any]:
    return data.get("result_data") or {}


def extract_token_data(data: dict[str, Any]) -> TokenData:
    """Extract the OAuth token payload from a token endpoint response.

    Raises:
        ISolarCloudApiAuthError: If the response carries no access token.

    """
    result = _result_data(data)
    access_token = result.get("access_token")
    if not access_token:
        no_token = "No access_token in token response"
        raise ISolarCloudApiAuthError(no_token)

    return TokenData(
        access_token=access_token,
        token_type=result.get("token_type", ""),
        refresh_token=result.get("refresh_token", ""),
        expires_in=int(result.get("expires_in") or 0),
        auth_ps_list=list(result.get("auth_ps_list") or []),
        auth_user=int(result.get("auth_user") or 0),
    )


def compute_token_expiry(expires_in: int, now: float | None = None) -> int:
    """Return the token expiry in milliseconds since the epoch.

    The expiry is truncated to whole seconds before conversion.
    """
    if now is None:
        now = time.time()
    return (int(now) + int(expires_in)) * 1000


def extract_plants(data: dict[str, Any]) -> list[Plant]:
    """Extract plant list from API response."""
    page_list = _result_data(data).get("pageList") or []
    return [Plant.from_dict(item) for item in page_list]


def extract_devices(data: dict[str, Any]) -> list[PlantDevice]:
    """Extract device list from API response."""
    page_list = _result_data(data).get("pageList") or []
    return [PlantDevice.from_dict(item) for item in page_list]


def extract_device_points(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract the per-device point mappings from a real-time data response."""
    point_list = _result_data(data).get("device_point_list") or []
    return [item.get("device_point") or {} for item in point_list]


def create_session_client() -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the iSolarCloud API.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    retry = Retry(total=RETRY_TOTAL, backoff_factor=RETRY_BACKOFF_FACTOR)
    transport = RetryTransport(transport=httpx.AsyncHTTPTransport(), retry=retry)
    return httpx.AsyncClient(transport=transport, timeout=HTTP_TIMEOUT)


async def async_exchange_code(
    session: httpx.AsyncClient,
    credentials: Credentials,
    code: str,
    redirect_uri: str,
) -> TokenData:
    """Exchange an OAuth authorization code for tokens.

    Args:
        session: HTTP client session.
        credentials: Application credentials (app key, secret, gateway).
        code: Authorization code received on the callback.
        redirect_uri: Redirect URI used for the authorization request.

    Returns:
        Parsed token payload.

    Raises:
        ISolarCloudApiAuthError: If authentication fails.
        ISolarCloudApiClientError: If API request fails.

    """
    url = f"{gateway_url_for(credentials)}{TOKEN_PATH}"
    payload = {
        "appkey": credentials.app_key,
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
    }
    headers = create_headers(credentials.secret_key)

    _LOGGER.debug("Exchanging authorization code at %s", url)
    response = await session.post(url, headers=headers, json=payload)
    _validate_http_status(response)
    try:
        data = response.json()
    except ValueError as err:
        error_message = f"Invalid JSON response: {err}"
        raise ISolarCloudApiClientError(error_message) from err
    if is_api_error(data):
        error_message = f"authentication failed: {data.get('result_msg', '')}"
        raise ISolarCloudApiAuthError(error_message)
    token = extract_token_data(data)
    _LOGGER.debug("Successfully exchanged authorization code")
    return token


async def _async_post(
    session: httpx.AsyncClient,
    credentials: Credentials,
    path: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    url = f"{gateway_url_for(credentials)}{path}"
    headers = create_headers(credentials.secret_key, credentials.access_token)
    response = await session.post(
        url,
        headers=headers,
        json={"appkey": credentials.app_key, **payload},
    )
    _LOGGER.debug("POST %s returned %s", url, response.status_code)
    return validate_response(response)


async def async_get_plant_list(
    session: httpx.AsyncClient,
    credentials: Credentials | None,
) -> list[Plant]:
    """Fetch the plants visible to the authenticated user.

    Raises:
        ISolarCloudApiAuthError: If not authenticated or token rejected.
        ISolarCloudApiClientError: If API request fails.

    """
    credentials = _require_token(credentials)

    _LOGGER.debug("Fetching plant list from iSolarCloud API")
    data = await _async_post(
        session,
        credentials,
        PLANT_LIST_PATH,
        {"page": 1, "size": PAGE_SIZE},
    )
    plants = extract_plants(data)
    _LOGGER.debug("Retrieved %d plants from iSolarCloud API", len(plants))
    return plants


async def async_get_device_list(
    session: httpx.AsyncClient,
    credentials: Credentials | None,
    ps_id: int,
) -> list[PlantDevice]:
    """Fetch the devices of one plant.

    Raises:
        ISolarCloudApiAuthError: If not authenticated or token rejected.
        ISolarCloudApiClientError: If API request fails.

    """
    credentials = _require_token(credentials)

    _LOGGER.debug("Fetching devices for plant %s", ps_id)
    data = await _async_post(
        session,
        credentials,
        DEVICE_LIST_PATH,
        {"ps_id": str(ps_id), "page": 1, "size": PAGE_SIZE},
    )
    devices = extract_devices(data)
    _LOGGER.debug("Retrieved %d devices for plant %s", len(devices), ps_id)
    return devices


async def async_get_device_point_data(
    session: httpx.AsyncClient,
    credentials: Credentials | None,
    device_type: int,
    ps_key: str,
    point_ids: list[int],
) -> list[dict[str, Any]]:
    """Fetch real-time point values for one device.

    Args:
        session: HTTP client session.
        credentials: Authenticated credentials.
        device_type: iSolarCloud device type code.
        ps_key: Device ps_key.
        point_ids: Numeric point identifiers to query.

    Returns:
        One mapping per device, keyed by "p" + point id.

    Raises:
        ISolarCloudApiAuthError: If not authenticated or token rejected.
        ISolarCloudApiClientError: If API request fails.

    """
    credentials = _require_token(credentials)

    _LOGGER.debug("Fetching points %s for device %s", point_ids, ps_key)
    data = await _async_post(
        session,
        credentials,
        DEVICE_POINT_PATH,
        {
            "device_type": device_type,
            "ps_key_list": [ps_key],
            "point_id_list": [str(point_id) for point_id in point_ids],
            "is_get_point_dict": "1",
        },
    )
    return extract_device_points(data)
