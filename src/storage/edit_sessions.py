"""
Edit sessions correlate a widget "edit" click with the later form submission
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config.settings import Config
from src.scheduler.errors import SessionExpiredError

logger = logging.getLogger(__name__)


@dataclass
class EditSession:
    event_id: str
    token: str
    started_at: float


class EditSessionStore:
    """
    One live session per user, most recent start wins.

    Sessions expire after ``ttl_seconds``. ``start`` hands back an opaque
    token; a submission that carries it must match, a submission that only
    identifies the user falls back to the user's current session.
    """

    def __init__(self, ttl_seconds: int = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else Config.EDIT_SESSION_TTL_SECONDS
        self._clock = clock
        self._sessions: Dict[str, EditSession] = {}
        self._lock = threading.Lock()

    def start(self, user_id: str, event_id: str) -> str:
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._sessions[user_id] = EditSession(event_id=event_id, token=token, started_at=self._clock())
        logger.info(f"📝 Edit session started for user {user_id}, event {event_id}")
        return token

    def _live_session(self, user_id: str) -> Optional[EditSession]:
        session = self._sessions.get(user_id)
        if session is None:
            return None
        if self._clock() - session.started_at > self.ttl_seconds:
            del self._sessions[user_id]
            logger.info(f"Edit session for user {user_id} expired")
            return None
        return session

    def resolve(self, user_id: str, token: str = None) -> str:
        """Event id of the user's live session, or SessionExpiredError"""
        with self._lock:
            session = self._live_session(user_id)
        if session is None:
            raise SessionExpiredError(f"No edit session found for user {user_id}")
        if token is not None and not self._token_matches(token, session.token):
            raise SessionExpiredError(f"Edit session token mismatch for user {user_id}")
        return session.event_id

    @staticmethod
    def _token_matches(given, expected: str) -> bool:
        # Tokens arrive from request JSON and may be any type
        return secrets.compare_digest(str(given).encode("utf-8"), expected.encode("utf-8"))

    def clear(self, user_id: str):
        with self._lock:
            self._sessions.pop(user_id, None)

    def purge_expired(self) -> int:
        """Drop every expired session, returning how many were removed"""
        with self._lock:
            expired = [
                user_id for user_id, session in self._sessions.items()
                if self._clock() - session.started_at > self.ttl_seconds
            ]
            for user_id in expired:
                del self._sessions[user_id]
        return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._sessions)
