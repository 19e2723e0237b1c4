import asyncio
import secrets
from datetime import datetime, timedelta

import structlog

from qrtransfer.config import Config
from qrtransfer.core.core import Service
from qrtransfer.core.modules.session.models import Session, SessionId, SessionState
from qrtransfer.core.modules.stream.models import CloseReason
from qrtransfer.errors import NotFoundError, ResourceExhaustedError, SessionExpiredError
from qrtransfer.utils import now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """In-memory registry of pairing sessions with a fixed TTL and a lock per session."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._sessions: dict[SessionId, Session] = {}
        self._locks: dict[SessionId, asyncio.Lock] = {}

    async def create_session(self, replaces: SessionId | None = None) -> Session:
        """Create a new session, optionally expiring the one it replaces."""
        if replaces is not None:
            await self.expire_session(replaces, CloseReason.SESSION_REPLACED)

        if self.count() >= self.config.max_sessions:
            logger.warning("session_capacity_reached", max_sessions=self.config.max_sessions)
            raise ResourceExhaustedError("Too many active sessions, try again later")

        session_id = SessionId(secrets.token_urlsafe(self.config.session_id_bytes))
        created_at = now()
        session = Session(
            id=session_id,
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=self.config.session_ttl_seconds),
        )
        self._sessions[session_id] = session
        self._locks[session_id] = asyncio.Lock()
        logger.info("session_created", session_id=session_id, expires_at=session.expires_at, replaces=replaces)
        return session

    async def get_session(self, session_id: SessionId) -> Session:
        """Get a live session, destroying it lazily if its TTL has elapsed."""
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError
        if session.state == SessionState.EXPIRED or session.is_expired(now()):
            await self.expire_session(session_id, CloseReason.SESSION_EXPIRED)
            raise SessionExpiredError
        return session

    def check_active(self, session_id: SessionId) -> Session:
        """Validate a session while its lock is held, without destroying it."""
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError
        if session.state == SessionState.EXPIRED or session.is_expired(now()):
            raise SessionExpiredError
        return session

    def session_lock(self, session_id: SessionId) -> asyncio.Lock:
        """Get the lock serializing queue and subscriber mutations of one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            raise NotFoundError
        return lock

    async def expire_session(self, session_id: SessionId, reason: CloseReason) -> bool:
        """Mark session expired, close its subscriber, discard its queue and remove it.

        Returns False when the session is already gone.
        """
        lock = self._locks.get(session_id)
        if lock is None:
            return False

        async with lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            session.state = SessionState.EXPIRED
            self.core.services.stream.close_subscriber(session_id, reason)
            dropped = self.core.services.relay.discard(session_id)
            del self._sessions[session_id]
            del self._locks[session_id]

        logger.info("session_destroyed", session_id=session_id, reason=reason, dropped_items=dropped)
        return True

    def list_expired(self, at: datetime) -> list[SessionId]:
        """List sessions whose TTL has elapsed at the given moment."""
        return [
            session_id
            for session_id, session in self._sessions.items()
            if session.state == SessionState.EXPIRED or session.is_expired(at)
        ]

    def count(self) -> int:
        """Count sessions that are still within their TTL."""
        at = now()
        return sum(1 for session in self._sessions.values() if not session.is_expired(at))
