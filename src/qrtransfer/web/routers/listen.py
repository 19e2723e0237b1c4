from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from qrtransfer.core.modules.session.models import SessionId
from qrtransfer.web.deps import AppDep
from qrtransfer.web.openapi import ErrorResponse
from qrtransfer.web.sse import SSE_HEADERS, SSE_MEDIA_TYPE, encode_events

router = APIRouter(tags=["listen"])


@router.get(
    "/listen/{session_id}",
    summary="Listen for content",
    description=(
        "Open the receiver's event stream. Events are JSON objects with a `type` of "
        "`connected`, `content` (with `contentType` and `content`), `heartbeat`, or `closed` (with `reason`). "
        "A new stream for the same session closes the previous one."
    ),
    operation_id="listen",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Server-sent event stream", "content": {SSE_MEDIA_TYPE: {}}},
        404: {"model": ErrorResponse, "description": "Session not found"},
        410: {"model": ErrorResponse, "description": "Session expired"},
    },
)
async def listen(session_id: str, app: AppDep) -> StreamingResponse:
    # Validate before the stream starts so errors still get a proper status code
    await app.get_session(SessionId(session_id))
    return StreamingResponse(encode_events(app.listen(SessionId(session_id))), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)
