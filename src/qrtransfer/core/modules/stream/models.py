"""Subscriber connection state and the events pushed over it."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from qrtransfer.core.modules.relay.models import ContentItem, ContentKind
from qrtransfer.core.modules.session.models import SessionId
from qrtransfer.utils import now


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class CloseReason(StrEnum):
    SUPERSEDED = "superseded"  # Another receiver attached to the same session
    SESSION_EXPIRED = "session_expired"
    SESSION_NOT_FOUND = "session_not_found"  # Session was gone before the stream attached
    SESSION_REPLACED = "session_replaced"  # Receiver minted a new session in place of this one
    CLIENT_DISCONNECTED = "client_disconnected"
    IDLE_TIMEOUT = "idle_timeout"
    TRANSPORT_FAILURE = "transport_failure"
    SERVER_SHUTDOWN = "server_shutdown"


@dataclass
class Subscription:
    """Long-lived push connection of the receiver attached to a session.

    At most one subscription per session is open at any time.
    """

    session_id: SessionId
    id: UUID = field(default_factory=uuid4)
    connected_at: datetime = field(default_factory=now)
    last_activity_at: datetime = field(default_factory=now)  # Last content delivery
    last_seen_at: datetime = field(default_factory=now)  # Last successful write of any event
    state: ConnectionState = ConnectionState.CONNECTING
    close_reason: CloseReason | None = None
    _wakeup: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    def open(self) -> None:
        self.state = ConnectionState.OPEN

    def close(self, reason: CloseReason) -> bool:
        """Transition to CLOSED and wake the push loop. Returns False if already closed."""
        if self.state == ConnectionState.CLOSED:
            return False
        self.state = ConnectionState.CLOSED
        self.close_reason = reason
        self._wakeup.set()
        return True

    def notify(self) -> None:
        self._wakeup.set()

    def clear(self) -> None:
        self._wakeup.clear()

    async def wait(self, timeout: float) -> bool:
        """Wait for a notification; False when the timeout elapsed first."""
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def mark_seen(self) -> None:
        self.last_seen_at = now()

    def mark_delivered(self) -> None:
        self.last_activity_at = self.last_seen_at = now()


class ConnectedEvent(BaseModel):
    """First event on every stream."""

    type: Literal["connected"] = "connected"
    session_id: SessionId = Field(..., serialization_alias="sessionId")


class ContentEvent(BaseModel):
    """Content item delivered to the receiver."""

    type: Literal["content"] = "content"
    content_type: ContentKind = Field(..., serialization_alias="contentType")
    content: str
    id: UUID
    number: int
    received_at: datetime = Field(..., serialization_alias="receivedAt")

    @classmethod
    def from_item(cls, item: ContentItem) -> "ContentEvent":
        return cls(
            content_type=item.kind,
            content=item.payload,
            id=item.id,
            number=item.number,
            received_at=item.received_at,
        )


class HeartbeatEvent(BaseModel):
    """Keep-alive pushed when the stream has been quiet for a heartbeat interval."""

    type: Literal["heartbeat"] = "heartbeat"


class ClosedEvent(BaseModel):
    """Last event of a stream closed by the server."""

    type: Literal["closed"] = "closed"
    reason: CloseReason


StreamEvent = ConnectedEvent | ContentEvent | HeartbeatEvent | ClosedEvent
