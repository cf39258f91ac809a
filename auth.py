import hmac
import logging
import time
from typing import Optional

from db import SettingsRepository

logger = logging.getLogger(__name__)


class PasswordGate:
    """Single shared password with time-limited sessions.

    A session is the ``{"is_authenticated", "timestamp"}`` pair returned by
    :meth:`login`; ``timestamp`` is milliseconds since the epoch.
    """

    def __init__(
        self, settings: SettingsRepository, session_hours: Optional[int] = None
    ) -> None:
        self.settings = settings
        self._session_hours = session_hours

    @property
    def session_ms(self) -> int:
        hours = self._session_hours
        if hours is None:
            hours = self.settings.get_int("session_hours", 24)
        return hours * 60 * 60 * 1000

    def _expected(self) -> str:
        return self.settings.get_text("app_password", "")

    def login(self, password: str, now: Optional[int] = None) -> dict:
        now = int(time.time() * 1000) if now is None else now
        expected = self._expected()
        if not expected:
            logger.warning("login attempted with no app_password configured")
            return {"is_authenticated": False, "timestamp": now}
        ok = hmac.compare_digest(str(password).encode(), expected.encode())
        return {"is_authenticated": ok, "timestamp": now}

    def is_valid(self, session: Optional[dict], now: Optional[int] = None) -> bool:
        if not session:
            return False
        now = int(time.time() * 1000) if now is None else now
        try:
            stamp = float(session.get("timestamp", 0))
        except (TypeError, ValueError):
            return False
        return bool(session.get("is_authenticated")) and now - stamp < self.session_ms

    def set_password(self, password: str) -> None:
        self.settings.set_text("app_password", password)
