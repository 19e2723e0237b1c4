"""Shared pytest fixtures."""

from collections.abc import Callable
from datetime import timedelta

import pytest

from qrtransfer.app import App
from qrtransfer.config import Config
from qrtransfer.core.core import Core
from qrtransfer.core.modules.session.models import Session
from qrtransfer.utils import now


@pytest.fixture
def config():
    """Create a config with short intervals and small limits for testing."""
    return Config(
        host="127.0.0.1",
        port=3100,
        debug=True,
        public_url="https://qr.example.com",
        heartbeat_interval_seconds=0.05,
        sweep_interval_seconds=60,
        subscriber_idle_timeout_seconds=0,
        max_sessions=5,
        max_queue_depth=3,
        max_content_length=100,
    )


@pytest.fixture
def core(config):
    """Create a fresh core with its own session registry."""
    return Core(config)


@pytest.fixture
def app(config):
    return App(config)


@pytest.fixture
def expire() -> Callable[[Session], None]:
    """Move a session past its TTL without waiting."""

    def _expire(session: Session) -> None:
        session.expires_at = now() - timedelta(seconds=1)

    return _expire
