from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import structlog

from qrtransfer.config import Config
from qrtransfer.core.core import Service
from qrtransfer.core.modules.session.models import SessionId
from qrtransfer.core.modules.stream.models import (
    ClosedEvent,
    CloseReason,
    ConnectedEvent,
    ContentEvent,
    HeartbeatEvent,
    StreamEvent,
    Subscription,
)
from qrtransfer.utils import now

logger = structlog.get_logger(__name__)


class StreamService(Service):
    """Manages the single live subscriber of each session and its push loop."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._subscribers: dict[SessionId, Subscription] = {}

    async def on_stop(self) -> None:
        """Close every open stream so the server can shut down."""
        for session_id in list(self._subscribers):
            self.close_subscriber(session_id, CloseReason.SERVER_SHUTDOWN)

    async def attach(self, session_id: SessionId) -> Subscription:
        """Register a new subscriber for a session, evicting the previous one (last attacher wins)."""
        sessions = self.core.services.session
        await sessions.get_session(session_id)

        async with sessions.session_lock(session_id):
            sessions.check_active(session_id)
            previous = self._subscribers.pop(session_id, None)
            if previous is not None:
                self._close(previous, CloseReason.SUPERSEDED)
            subscription = Subscription(session_id=session_id)
            subscription.open()
            self._subscribers[session_id] = subscription

        logger.info(
            "subscriber_attached",
            session_id=session_id,
            subscription_id=subscription.id,
            superseded=previous.id if previous else None,
            pending=self.core.services.relay.depth(session_id),
        )
        return subscription

    async def events(self, subscription: Subscription) -> AsyncGenerator[StreamEvent]:
        """Push loop of one subscription: buffered items first, then live items and heartbeats.

        Every await is a cancellation point; the subscriber slot is released however the loop ends.
        Items are acknowledged after their write, so an item in flight when the stream is superseded
        or dropped is delivered again under the same id.
        """
        relay = self.core.services.relay
        session_id = subscription.session_id
        try:
            yield ConnectedEvent(session_id=session_id)
            subscription.mark_seen()

            while subscription.is_open:
                # Cleared before draining, so a notify during delivery triggers another pass
                subscription.clear()
                for item in relay.drain(session_id):
                    if not subscription.is_open:
                        break
                    yield ContentEvent.from_item(item)
                    relay.acknowledge(session_id, item.id)
                    subscription.mark_delivered()

                if not subscription.is_open:
                    break
                if await subscription.wait(self.config.heartbeat_interval_seconds):
                    continue
                if self._is_idle(subscription, now()):
                    self._close(subscription, CloseReason.IDLE_TIMEOUT)
                    break

                yield HeartbeatEvent()
                subscription.mark_seen()

            if subscription.close_reason is not None:
                yield ClosedEvent(reason=subscription.close_reason)
        finally:
            self.detach(subscription)

    def detach(self, subscription: Subscription) -> None:
        """Release the subscriber slot after the transport went away."""
        if self._subscribers.get(subscription.session_id) is subscription:
            del self._subscribers[subscription.session_id]
        self._close(subscription, CloseReason.CLIENT_DISCONNECTED)

    def close_subscriber(self, session_id: SessionId, reason: CloseReason) -> bool:
        """Close the subscriber of a session, if any."""
        subscription = self._subscribers.pop(session_id, None)
        if subscription is None:
            return False
        return self._close(subscription, reason)

    def notify(self, session_id: SessionId) -> None:
        """Wake the push loop of a session after new content was queued."""
        subscription = self._subscribers.get(session_id)
        if subscription is not None:
            subscription.notify()

    def get_subscriber(self, session_id: SessionId) -> Subscription | None:
        return self._subscribers.get(session_id)

    def reap_stale(self, at: datetime) -> int:
        """Close subscriptions that have not written anything for several heartbeat intervals."""
        threshold = timedelta(seconds=self.config.heartbeat_interval_seconds * self.config.stale_after_heartbeats)
        stale = [session_id for session_id, sub in self._subscribers.items() if at - sub.last_seen_at > threshold]
        for session_id in stale:
            self.close_subscriber(session_id, CloseReason.TRANSPORT_FAILURE)
        return len(stale)

    def count(self) -> int:
        return len(self._subscribers)

    def _is_idle(self, subscription: Subscription, at: datetime) -> bool:
        timeout = self.config.subscriber_idle_timeout_seconds
        return timeout > 0 and at - subscription.last_activity_at >= timedelta(seconds=timeout)

    def _close(self, subscription: Subscription, reason: CloseReason) -> bool:
        if not subscription.close(reason):
            return False
        logger.info(
            "subscriber_closed",
            session_id=subscription.session_id,
            subscription_id=subscription.id,
            reason=reason,
            connected_for=(now() - subscription.connected_at).total_seconds(),
        )
        return True
