"""Data models for the iSolarCloud monitor."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

# Stored JSON key for each Credentials attribute.
_CREDENTIAL_KEYS = {
    "app_key": "appKey",
    "secret_key": "secretKey",
    "auth_url": "authUrl",
    "access_token": "accessToken",
    "refresh_token": "refreshToken",
    "token_expiry": "tokenExpiry",
    "gateway_url": "gatewayUrl",
}
_REQUIRED_CREDENTIAL_KEYS = ("app_key", "secret_key", "auth_url")


@dataclass
class Credentials:
    """API credentials and the tokens obtained with them.

    ``token_expiry`` is expressed in milliseconds since the epoch.
    """

    app_key: str
    secret_key: str
    auth_url: str
    access_token: str = ""
    refresh_token: str = ""
    token_expiry: int = 0
    gateway_url: str = ""

    def is_valid(self, now_ms: int) -> bool:
        """Return True if the access token can be used to resume a session."""
        return bool(self.access_token) and bool(self.token_expiry) and (
            self.token_expiry > now_ms
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON layout, omitting empty optional keys."""
        data = {}
        for attr, key in _CREDENTIAL_KEYS.items():
            value = getattr(self, attr)
            if attr in _REQUIRED_CREDENTIAL_KEYS or value:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credentials:
        """Build credentials from the stored JSON layout."""
        return cls(
            app_key=str(data.get("appKey") or ""),
            secret_key=str(data.get("secretKey") or ""),
            auth_url=str(data.get("authUrl") or ""),
            access_token=str(data.get("accessToken") or ""),
            refresh_token=str(data.get("refreshToken") or ""),
            token_expiry=int(data.get("tokenExpiry") or 0),
            gateway_url=str(data.get("gatewayUrl") or ""),
        )


@dataclass
class TokenData:
    """OAuth token payload returned by the token endpoint."""

    access_token: str
    token_type: str = ""
    refresh_token: str = ""
    expires_in: int = 0
    auth_ps_list: list[str] = field(default_factory=list)
    auth_user: int = 0


@dataclass
class AuthResult:
    """Outcome of an authentication attempt."""

    authenticated: bool
    message: str | None = None
    token_expiry: int | None = None


def _filter_known(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass(frozen=True)
class Plant:
    """A monitored solar or storage installation."""

    ps_id: int
    ps_name: str = ""
    description: str | None = None
    ps_type: int = 0
    online_status: int = 0
    valid_flag: int = 0
    grid_connection_status: int = 0
    install_date: str = ""
    ps_location: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    ps_fault_status: int = 0
    connect_type: int = 0
    update_time: str = ""
    ps_current_time_zone: str = ""
    grid_connection_time: str | None = None
    build_status: int = 0
    today_energy: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Plant:
        """Build a plant from an API record, ignoring unknown keys."""
        return cls(**_filter_known(cls, data))


@dataclass(frozen=True)
class PlantDevice:
    """A device belonging to a plant."""

    uuid: int = 0
    ps_key: str = ""
    device_sn: str = ""
    device_name: str = ""
    device_type: int = 0
    type_name: str = ""
    device_model_id: int = 0
    device_model_code: str = ""
    dev_fault_status: int = 0
    dev_status: str = ""
    claim_state: int = 0
    device_code: int = 0
    chnnl_id: int = 0
    communication_dev_sn: str = ""
    ps_id: int = 0

    @property
    def display_key(self) -> int | str:
        """Return the key used to tell rendered device cards apart."""
        return self.uuid or self.device_sn

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlantDevice:
        """Build a device from an API record, ignoring unknown keys."""
        return cls(**_filter_known(cls, data))
