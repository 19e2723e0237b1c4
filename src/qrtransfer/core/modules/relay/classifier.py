"""Link/text detection for submitted content."""

import re
from urllib.parse import urlsplit

from qrtransfer.core.modules.relay.models import ContentKind

# Bare host with optional port and path, e.g. example.com, sub.example.co.uk:8080/a?b
HOST_RE = re.compile(
    r"^(?:(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}"
    r"|\d{1,3}(?:\.\d{1,3}){3})"
    r"(?::\d{1,5})?"
    r"(?:[/?#]\S*)?$",
    re.IGNORECASE,
)


def classify(payload: str) -> ContentKind:
    """Decide whether a payload is a link or plain text.

    A payload is a link when it is an absolute URL with a host, or a bare
    host-like string. Anything containing inner whitespace is text.
    """
    candidate = payload.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return ContentKind.TEXT

    try:
        parts = urlsplit(candidate)
    except ValueError:
        return ContentKind.TEXT

    if parts.scheme and parts.netloc:
        return ContentKind.LINK
    if HOST_RE.match(candidate):
        return ContentKind.LINK
    return ContentKind.TEXT
