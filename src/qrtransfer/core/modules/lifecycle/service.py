import asyncio
import contextlib

import structlog

from qrtransfer.config import Config
from qrtransfer.core.core import Service
from qrtransfer.core.modules.stream.models import CloseReason
from qrtransfer.utils import now

logger = structlog.get_logger(__name__)


class LifecycleService(Service):
    """Background sweep that reaps expired sessions and dead subscriber streams."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._sweep_task: asyncio.Task[None] | None = None

    async def on_start(self) -> None:
        self._sweep_task = asyncio.create_task(self._sweep_forever())
        logger.debug("lifecycle_service_started", sweep_interval=self.config.sweep_interval_seconds)

    async def on_stop(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None

    async def sweep(self) -> int:
        """Expire every session past its TTL and close stale streams. Returns count of reaped sessions."""
        at = now()
        sessions = self.core.services.session
        reaped = 0
        for session_id in sessions.list_expired(at):
            if await sessions.expire_session(session_id, CloseReason.SESSION_EXPIRED):
                reaped += 1
        stale = self.core.services.stream.reap_stale(at)

        log = logger.info if reaped or stale else logger.debug
        log("sweep_completed", reaped_sessions=reaped, stale_streams=stale, active_sessions=sessions.count())
        return reaped

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.exception("sweep_failed", error=str(e))
