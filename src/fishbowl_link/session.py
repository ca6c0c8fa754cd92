"""Session and login state for one Fishbowl connection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from fishbowl_link.metrics import registry

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    """Login state machine phases."""

    DISCONNECTED = "disconnected"
    CONNECTED_LOGGED_OUT = "connected_logged_out"
    CONNECTED_LOGGED_IN = "connected_logged_in"


@dataclass
class Session:
    """Credentials, ticket and login flag.

    ``session_key`` is only non-empty while ``logged_in`` is true; the mark_*
    methods are the only writers and keep that invariant.
    """

    host: str = "127.0.0.1"
    port: int = 28192
    app_id: int = 54321
    app_name: str = "Fishbowljs"
    app_description: str = "Fishbowljs helper"
    username: str = "admin"
    password: str = field(default="admin", repr=False)

    session_key: str = field(default="", init=False, repr=False)
    user_id: int | str | None = field(default=None, init=False)
    logged_in: bool = field(default=False, init=False)
    connected: bool = field(default=False, init=False)

    @property
    def phase(self) -> SessionPhase:
        if not self.connected:
            return SessionPhase.DISCONNECTED
        if self.logged_in:
            return SessionPhase.CONNECTED_LOGGED_IN
        return SessionPhase.CONNECTED_LOGGED_OUT

    def mark_connected(self) -> None:
        self.connected = True
        self._clear_ticket()

    def mark_logged_in(self, session_key: str, user_id: int | str | None) -> None:
        if not session_key:
            logger.warning("Login response carried an empty session key")
        self.session_key = session_key
        self.user_id = user_id
        self.logged_in = bool(session_key)
        registry.record_session_event("login")
        logger.info("✓ Logged in to Fishbowl", extra={"user_id": user_id, "host": self.host})

    def mark_logged_out(self, reason: str = "logout") -> None:
        was_logged_in = self.logged_in
        self._clear_ticket()
        if was_logged_in:
            registry.record_session_event(reason)
            logger.info("Logged out of Fishbowl", extra={"reason": reason, "host": self.host})

    def mark_disconnected(self, reason: str = "disconnect") -> None:
        self.connected = False
        self.mark_logged_out(reason)

    def _clear_ticket(self) -> None:
        self.session_key = ""
        self.user_id = None
        self.logged_in = False
