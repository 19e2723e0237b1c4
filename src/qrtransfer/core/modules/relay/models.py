from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from qrtransfer.core.modules.session.models import SessionId
from qrtransfer.utils import now


class ContentKind(StrEnum):
    TEXT = "text"
    LINK = "link"


class ContentItem(BaseModel):
    """Piece of content submitted by a sender, buffered until delivered.

    Never outlives its session.
    """

    id: UUID = Field(default_factory=uuid4)
    session_id: SessionId
    number: int  # Sequential number per session
    payload: str
    kind: ContentKind
    received_at: datetime = Field(default_factory=now)

    model_config = {"frozen": True}


class SubmissionReceipt(BaseModel):
    """Acknowledgment returned to the sender (API representation)."""

    accepted: bool = Field(True, description="Content was queued for delivery")
    item_id: UUID = Field(..., serialization_alias="itemId", description="Content item ID")
    number: int = Field(..., description="Sequential number within the session")
    content_type: ContentKind = Field(..., serialization_alias="contentType", description="Detected content type")
    received_at: datetime = Field(..., serialization_alias="receivedAt", description="Time the relay accepted it (UTC)")

    @classmethod
    def from_domain(cls, item: ContentItem) -> "SubmissionReceipt":
        """Create view model from domain model."""
        return cls(item_id=item.id, number=item.number, content_type=item.kind, received_at=item.received_at)
