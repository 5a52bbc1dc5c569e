"""Credential persistence for the iSolarCloud monitor."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
from pathlib import Path

from .const import APP_DIR_NAME, CONFIG_DIR_ENV, CREDENTIALS_FILE
from .models import Credentials

_LOGGER = logging.getLogger(__name__)

_FILE_MODE = 0o600


def user_config_dir() -> Path:
    """Return the per-user configuration directory for this platform."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)

    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


class CredentialStore:
    """Load and save credentials as JSON in the user's config directory."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or user_config_dir() / APP_DIR_NAME / CREDENTIALS_FILE

    def load(self) -> Credentials | None:
        """Return the stored credentials, or None if absent or unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            _LOGGER.debug("No stored credentials at %s", self.path)
            return None
        except OSError:
            _LOGGER.exception("Failed to read credentials from %s", self.path)
            return None

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                not_an_object = "credentials file does not hold a JSON object"
                raise ValueError(not_an_object)
            return Credentials.from_dict(data)
        except ValueError as err:
            _LOGGER.warning(
                "Ignoring malformed credentials file %s: %s", self.path, err
            )
            return None

    def save(self, credentials: Credentials | None) -> None:
        """Persist credentials; passing None deletes the stored file.

        Raises:
            OSError: If the directory or file cannot be written.

        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if credentials is None:
            with contextlib.suppress(FileNotFoundError):
                self.path.unlink()
            _LOGGER.debug("Removed stored credentials at %s", self.path)
            return

        payload = json.dumps(credentials.to_dict(), indent=2)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        _LOGGER.debug("Saved credentials to %s", self.path)
