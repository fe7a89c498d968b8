"""
Access Gate - passcode check in front of the application.

The "authenticated" flag lives in ``SessionStorage``, so it lasts exactly as
long as the process. There is no lockout or backoff on repeated failures.
"""

import logging
import re
from typing import Callable

from focusflow.domain.commands import SettingsChanges, UpdateSettings
from focusflow.domain.errors import PasscodeError
from focusflow.domain.models import AppSettings
from focusflow.infra.repository import SessionStorage

logger = logging.getLogger(__name__)

AUTH_KEY = "isAuthenticated"
DEFAULT_PASSCODE = "123456"
PASSCODE_PATTERN = re.compile(r"^\d{6}$")


class AccessGate:
    """
    Compares submitted codes against the passcode in the current settings.

    Args:
        settings_provider: returns the live ``AppSettings`` (usually
            ``lambda: service.state.settings``)
        storage: session-scoped storage holding the authenticated flag
    """

    def __init__(self, settings_provider: Callable[[], AppSettings], storage: SessionStorage):
        self._settings_provider = settings_provider
        self._storage = storage

    @property
    def passcode(self) -> str:
        return self._settings_provider().passcode or DEFAULT_PASSCODE

    @property
    def is_authenticated(self) -> bool:
        return self._storage.get(AUTH_KEY) == "true"

    def submit(self, code: str) -> bool:
        """Open the gate when ``code`` matches; report a rejected attempt otherwise."""
        if code == self.passcode:
            self._storage.set(AUTH_KEY, "true")
            logger.info("Access granted")
            return True
        logger.warning("Rejected passcode attempt")
        return False

    def lock(self) -> None:
        self._storage.remove(AUTH_KEY)

    def change_passcode(self, current: str, new: str, confirm: str) -> UpdateSettings:
        """
        Validate a passcode change and build the command that applies it.

        Raises:
            PasscodeError: with a message suitable for showing to the user
        """
        if current != self.passcode:
            raise PasscodeError("Current passcode is incorrect")
        if not PASSCODE_PATTERN.match(new):
            raise PasscodeError("New passcode must be exactly 6 digits")
        if new != confirm:
            raise PasscodeError("New passcode and confirmation do not match")
        return UpdateSettings(changes=SettingsChanges(passcode=new))
