"""
Session persistence

SessionStore is the boundary the draft service writes through. Two
implementations ship: an in-process store with a retention window, and a
REST-backed store that goes through the shared API client.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from api.client import APIClient
from config import get_config
from models.draft_session import DraftSession, SessionMetadata
from models.turn import DraftFamily
from services.base_service import BaseService

logger = logging.getLogger(f'{__name__}.SessionStore')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore(ABC):
    """Persistence boundary for draft sessions. Loads always return independent copies."""

    @abstractmethod
    async def load(self, key: str) -> Optional[DraftSession]:
        """Load a session, or None if it does not exist or has expired."""

    @abstractmethod
    async def save(self, session: DraftSession) -> None:
        """Persist the full session state."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a session; returns False if it did not exist."""

    @abstractmethod
    async def list_metadata(self, live_only: bool = False,
                            family: Optional[DraftFamily] = None) -> List[SessionMetadata]:
        """List session metadata, optionally only live sessions of one family."""


class InMemorySessionStore(SessionStore):
    """
    Process-local store.

    Sessions are kept as JSON-mode dumps so callers never share mutable state
    with the store. A session whose last activity is older than the retention
    window is treated as gone.
    """

    def __init__(self, retention: Optional[timedelta] = None,
                 live_window: Optional[timedelta] = None,
                 clock: Callable[[], datetime] = _utcnow):
        config = get_config()
        self.retention = retention or timedelta(hours=config.session_retention_hours)
        self.live_window = live_window or timedelta(hours=config.live_window_hours)
        self._clock = clock
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def _is_expired(self, data: Dict[str, Any], now: datetime) -> bool:
        stamp = data.get('last_activity_at') or data.get('created_at')
        if not stamp:
            return False
        last = datetime.fromisoformat(stamp) if isinstance(stamp, str) else stamp
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return now - last > self.retention

    async def load(self, key: str) -> Optional[DraftSession]:
        data = self._sessions.get(key)
        if data is None:
            return None
        if self._is_expired(data, self._clock()):
            logger.info(f"Session {key} expired")
            self._sessions.pop(key, None)
            return None
        return DraftSession.model_validate(data)

    async def save(self, session: DraftSession) -> None:
        self._sessions[session.key] = session.model_dump(mode="json")
        logger.debug(f"Saved session {session.key} (rev {session.revision})")

    async def delete(self, key: str) -> bool:
        return self._sessions.pop(key, None) is not None

    async def list_metadata(self, live_only: bool = False,
                            family: Optional[DraftFamily] = None) -> List[SessionMetadata]:
        now = self._clock()
        result = []
        for key, data in self._sessions.items():
            if self._is_expired(data, now):
                continue
            metadata = DraftSession.model_validate(data).metadata()
            if family is not None and metadata.family != DraftFamily(family).value:
                continue
            if live_only and not metadata.is_live(self.live_window, now):
                continue
            result.append(metadata)
        result.sort(key=lambda m: m.last_activity_at or m.created_at or now, reverse=True)
        return result

    def purge_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Drop every session past retention; returns the dropped keys."""
        now = now or self._clock()
        expired = [key for key, data in self._sessions.items() if self._is_expired(data, now)]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired session(s)")
        return expired

    def __len__(self):
        return len(self._sessions)


class ApiSessionStore(BaseService[DraftSession], SessionStore):
    """
    REST-backed store.

    Endpoints:
    - GET/PUT/POST/DELETE sessions/{key}
    - GET sessions?live=true&family=... for listings
    """

    def __init__(self, client: Optional[APIClient] = None):
        super().__init__(DraftSession, 'sessions', client=client)

    async def load(self, key: str) -> Optional[DraftSession]:
        """
        Raises:
            APIException: For API errors or an unreadable session record
        """
        return await self.get_by_id(key)

    async def save(self, session: DraftSession) -> None:
        await self.upsert(session.key, session.model_dump(mode="json"))
        logger.debug(f"Saved session {session.key} (rev {session.revision}) via API")

    async def list_metadata(self, live_only: bool = False,
                            family: Optional[DraftFamily] = None) -> List[SessionMetadata]:
        params = []
        if live_only:
            params.append(('live', 'true'))
        if family is not None:
            params.append(('family', DraftFamily(family).value))

        data = await self.get_raw(params=params or None)
        if not data:
            return []
        return self._validate_items(
            self._extract_items(data),
            parser=SessionMetadata.from_api_data,
            label="session metadata",
        )
