"""Desktop monitor for Sungrow iSolarCloud plants, devices and batteries."""

from .client import ISolarCloudClient
from .session import SessionController, SessionState

__version__ = "0.1.0"

__all__ = ["ISolarCloudClient", "SessionController", "SessionState"]
