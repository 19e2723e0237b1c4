from collections.abc import AsyncGenerator
from contextlib import aclosing, asynccontextmanager

from qrtransfer.config import Config
from qrtransfer.core.core import Core
from qrtransfer.core.modules.relay.models import SubmissionReceipt
from qrtransfer.core.modules.session.models import Session, SessionId, SessionView
from qrtransfer.core.modules.stream.models import ClosedEvent, CloseReason, StreamEvent
from qrtransfer.core.modules.token.encoder import decode_token, encode_token
from qrtransfer.errors import NotFoundError, SessionExpiredError, ValidationError


class App:
    """Facade for all relay operations, validates input before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def create_session(self, replaces: SessionId | None = None) -> SessionView:
        """Mint a new pairing session, expiring the one it replaces if given."""
        session = await self._core.services.session.create_session(replaces)
        return self._to_view(session)

    async def get_session(self, session_id: SessionId) -> SessionView:
        """Validate a session and return its metadata."""
        session = await self._core.services.session.get_session(session_id)
        return self._to_view(session)

    async def submit_content(self, content: str, session_id: str | None = None, token: str | None = None) -> SubmissionReceipt:
        """Queue content for the receiver of a session identified by id or scanned token."""
        if session_id is None and token is None:
            raise ValidationError("Either sessionId or token is required")
        resolved = decode_token(session_id if session_id is not None else token or "")
        item = await self._core.services.relay.enqueue(resolved, content)
        return SubmissionReceipt.from_domain(item)

    async def listen(self, session_id: SessionId) -> AsyncGenerator[StreamEvent]:
        """Attach as the session's subscriber and yield its events until the stream closes."""
        stream = self._core.services.stream
        try:
            subscription = await stream.attach(session_id)
        except SessionExpiredError:
            # Session expired between validation and the first read of the stream
            yield ClosedEvent(reason=CloseReason.SESSION_EXPIRED)
            return
        except NotFoundError:
            yield ClosedEvent(reason=CloseReason.SESSION_NOT_FOUND)
            return

        async with aclosing(stream.events(subscription)) as events:
            async for event in events:
                yield event

    def get_stats(self) -> dict[str, int]:
        """Get counts of live sessions and open streams."""
        return {
            "sessions": self._core.services.session.count(),
            "subscribers": self._core.services.stream.count(),
        }

    # === Private helpers ===
    def _to_view(self, session: Session) -> SessionView:
        return SessionView.from_domain(session, encode_token(session, self._core.config.public_url))
