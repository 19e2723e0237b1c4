from collections import deque
from uuid import UUID

import structlog

from qrtransfer.config import Config
from qrtransfer.core.core import Service
from qrtransfer.core.modules.relay.classifier import classify
from qrtransfer.core.modules.relay.models import ContentItem
from qrtransfer.core.modules.session.models import SessionId
from qrtransfer.errors import ResourceExhaustedError, ValidationError

logger = structlog.get_logger(__name__)


class RelayService(Service):
    """Per-session FIFO buffer of content awaiting delivery to the live subscriber."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._queues: dict[SessionId, deque[ContentItem]] = {}
        self._counters: dict[SessionId, int] = {}

    async def enqueue(self, session_id: SessionId, payload: str) -> ContentItem:
        """Classify and buffer a submission, then wake the attached subscriber.

        Succeeds whether or not a subscriber is attached.
        """
        if not payload.strip():
            raise ValidationError("Content must not be empty")
        if len(payload) > self.config.max_content_length:
            raise ValidationError(f"Content exceeds {self.config.max_content_length} characters")

        sessions = self.core.services.session
        await sessions.get_session(session_id)

        async with sessions.session_lock(session_id):
            # Session may have been expired by the sweep while waiting for the lock
            sessions.check_active(session_id)

            queue = self._queues.setdefault(session_id, deque())
            if len(queue) >= self.config.max_queue_depth:
                logger.warning("queue_full", session_id=session_id, depth=len(queue))
                raise ResourceExhaustedError("Too many undelivered items in this session")

            number = self._counters.get(session_id, 0) + 1
            self._counters[session_id] = number
            item = ContentItem(session_id=session_id, number=number, payload=payload, kind=classify(payload))
            queue.append(item)

        logger.info("content_enqueued", session_id=session_id, number=number, kind=item.kind, depth=len(queue))
        self.core.services.stream.notify(session_id)
        return item

    def drain(self, session_id: SessionId) -> list[ContentItem]:
        """Get buffered, undelivered items in enqueue order.

        Items stay buffered until acknowledged, so a failed write leaves them for the next subscriber.
        """
        return list(self._queues.get(session_id, ()))

    def acknowledge(self, session_id: SessionId, item_id: UUID) -> bool:
        """Remove an item once it has been written to the subscriber stream."""
        queue = self._queues.get(session_id)
        if not queue:
            return False
        # Delivery is FIFO, so the acknowledged item is almost always at the head
        if queue[0].id == item_id:
            queue.popleft()
            return True
        for item in queue:
            if item.id == item_id:
                queue.remove(item)
                return True
        return False

    def discard(self, session_id: SessionId) -> int:
        """Drop the queue of a session and return count of discarded items."""
        self._counters.pop(session_id, None)
        queue = self._queues.pop(session_id, None)
        return len(queue) if queue else 0

    def depth(self, session_id: SessionId) -> int:
        """Count buffered items of a session."""
        return len(self._queues.get(session_id, ()))
