import re
from datetime import UTC, datetime

SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


def is_session_id(value: str) -> bool:
    return bool(SESSION_ID_RE.fullmatch(value))


def now() -> datetime:
    return datetime.now(UTC)
