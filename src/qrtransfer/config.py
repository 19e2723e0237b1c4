from pydantic import Field
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    host: str
    port: int
    debug: bool
    public_url: str  # Base URL of the receiver/sender frontend embedded into tokens, e.g. https://qr.example.com
    cors_origins: list[str] = []
    session_ttl_seconds: float = Field(30 * 60, gt=0)
    heartbeat_interval_seconds: float = Field(15, gt=0)
    sweep_interval_seconds: float = Field(60, gt=0)
    subscriber_idle_timeout_seconds: float = Field(15 * 60, ge=0)  # 0 disables the idle timeout
    stale_after_heartbeats: int = Field(4, ge=1)  # Missed heartbeat writes before a stream counts as dead
    max_sessions: int = Field(10_000, ge=1)
    max_queue_depth: int = Field(500, ge=1)
    max_content_length: int = Field(64 * 1024, ge=1)
    session_id_bytes: int = Field(24, ge=12, le=96)  # Encoded ids must stay within 16..128 characters

    model_config = {
        "env_file": [".env"],
        "env_prefix": "QRTRANSFER_",
        "extra": "ignore",
    }
