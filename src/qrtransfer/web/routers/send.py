from fastapi import APIRouter
from pydantic import BaseModel, Field

from qrtransfer.core.modules.relay.models import SubmissionReceipt
from qrtransfer.web.deps import AppDep
from qrtransfer.web.openapi import ErrorResponse

router = APIRouter(tags=["send"])


class SendRequest(BaseModel):
    """Content submitted by a sender device."""

    session_id: str | None = Field(None, alias="sessionId", description="Session to deliver to")
    token: str | None = Field(None, description="Scanned token payload, used when sessionId is absent")
    content: str = Field(..., description="Text or URL to relay")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {"sessionId": "k3v9Qe0m1xR8d2LwT7pYbN4sAcZ6hJfU", "content": "https://example.com/article"},
                {"token": "https://qr.example.com/send?session=k3v9Qe0m1xR8d2LwT7pYbN4sAcZ6hJfU", "content": "meeting notes"},
            ]
        },
    }


@router.post(
    "/send",
    summary="Send content",
    description=(
        "Queue text or a link for the receiver of a session. "
        "Content is accepted even when no receiver is connected and is delivered when one attaches."
    ),
    operation_id="sendContent",
    status_code=202,
    responses={
        202: {"description": "Content queued"},
        400: {"model": ErrorResponse, "description": "Empty or oversized content, or malformed session id"},
        404: {"model": ErrorResponse, "description": "Session not found"},
        410: {"model": ErrorResponse, "description": "Session expired"},
        503: {"model": ErrorResponse, "description": "Session queue is full"},
    },
)
async def send_content(request: SendRequest, app: AppDep) -> SubmissionReceipt:
    return await app.submit_content(request.content, session_id=request.session_id, token=request.token)
