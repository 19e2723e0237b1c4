from fastapi import APIRouter
from pydantic import BaseModel, Field

from qrtransfer.core.modules.session.models import SessionId, SessionView
from qrtransfer.web.deps import AppDep
from qrtransfer.web.openapi import ErrorResponse

router = APIRouter(tags=["sessions"])


class CreateSessionRequest(BaseModel):
    """Request to mint a new pairing session."""

    replaces: SessionId | None = Field(None, description="Session of the same receiver to expire in favour of the new one")


@router.post(
    "/session",
    summary="Create session",
    description="Mint a new pairing session and return its id together with the payload to render as a scannable code.",
    operation_id="createSession",
    status_code=201,
    responses={
        201: {"description": "Session created"},
        503: {"model": ErrorResponse, "description": "Too many active sessions"},
    },
)
async def create_session(app: AppDep, request: CreateSessionRequest | None = None) -> SessionView:
    return await app.create_session(request.replaces if request else None)


@router.get(
    "/session/{session_id}",
    summary="Get session",
    description="Validate a session. Receivers mint a replacement session when this fails.",
    operation_id="getSession",
    responses={
        200: {"description": "Session is active"},
        404: {"model": ErrorResponse, "description": "Session not found"},
        410: {"model": ErrorResponse, "description": "Session expired"},
    },
)
async def get_session(session_id: str, app: AppDep) -> SessionView:
    return await app.get_session(SessionId(session_id))
