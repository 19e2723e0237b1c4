"""Pairing session models."""

from datetime import datetime
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, Field

SessionId = NewType("SessionId", str)


class SessionState(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"


class Session(BaseModel):
    """Ephemeral pairing session shared between a receiver and a sender.

    Sessions have a fixed TTL from creation and are never extended.
    """

    id: SessionId
    created_at: datetime
    expires_at: datetime
    state: SessionState = SessionState.ACTIVE

    def is_expired(self, at: datetime) -> bool:
        """Check whether the TTL has elapsed at the given moment."""
        return at >= self.expires_at


class SessionView(BaseModel):
    """Session metadata (API representation)."""

    session_id: SessionId = Field(..., serialization_alias="sessionId", description="Session identifier")
    encoded_token: str = Field(..., serialization_alias="encodedToken", description="Scannable token payload")
    created_at: datetime = Field(..., serialization_alias="createdAt", description="Creation time (UTC)")
    expires_at: datetime = Field(..., serialization_alias="expiresAt", description="Expiry time (UTC)")
    state: SessionState = Field(..., description="Session state")

    @classmethod
    def from_domain(cls, session: Session, encoded_token: str) -> "SessionView":
        """Create view model from domain model."""
        return cls(
            session_id=session.id,
            encoded_token=encoded_token,
            created_at=session.created_at,
            expires_at=session.expires_at,
            state=session.state,
        )
