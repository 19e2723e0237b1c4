"""Scannable token payloads for pairing sessions."""

from urllib.parse import parse_qs, urlencode, urlsplit

from qrtransfer.core.modules.session.models import Session, SessionId
from qrtransfer.errors import ValidationError
from qrtransfer.utils import is_session_id

SEND_PATH = "/send"
SESSION_PARAM = "session"


def encode_token(session: Session, base_url: str) -> str:
    """Build the URL a sender device opens after scanning the receiver's code.

    Args:
        session: Session to pair with
        base_url: Public URL of the frontend, with or without trailing slash

    Returns:
        Absolute URL embedding the session id as a query parameter
    """
    if not is_session_id(session.id):
        raise ValidationError("Malformed session id")
    return f"{base_url.rstrip('/')}{SEND_PATH}?{urlencode({SESSION_PARAM: session.id})}"


def decode_token(payload: str) -> SessionId:
    """Recover the session id from a scanned token or a bare session id.

    Args:
        payload: Token URL produced by encode_token, or the id itself

    Returns:
        Session id to submit content against
    """
    payload = payload.strip()
    if is_session_id(payload):
        return SessionId(payload)

    values = parse_qs(urlsplit(payload).query).get(SESSION_PARAM, [])
    if len(values) != 1 or not is_session_id(values[0]):
        raise ValidationError("Token does not contain a valid session id")
    return SessionId(values[0])
