"""Redaction of internal-error messages before they leave the process."""

import re
from typing import Optional

GENERIC_ERROR_MESSAGE = "An error occurred while processing the request"

# Matched anywhere in the message, case-insensitively.
SUBSTRING_TOKENS = (
    "password",
    "token",
    "secret",
    "credential",
    "api_key",
    "apikey",
    "bearer",
    "jwt",
    "session_id",
    "cookie",
)

# Matched only as a whole word: "auth" must not flag "Authentication".
WORD_TOKENS = ("auth",)

_SENSITIVE_RE = re.compile(
    "|".join(
        [re.escape(token) for token in SUBSTRING_TOKENS]
        + [rf"\b{re.escape(token)}\b" for token in WORD_TOKENS]
    ),
    re.IGNORECASE,
)


def contains_sensitive_data(message: str) -> bool:
    return _SENSITIVE_RE.search(message) is not None


def sanitize_message(message: str, label: Optional[str] = None) -> str:
    """Return ``message`` unchanged, or the generic message if it may leak secrets.

    The whole message is replaced on a match, never just the token. When the
    message is clean and ``label`` is given, it is prefixed as ``"<label>: "``.

    Args:
        message: Free text intended for an internal-error response.
        label: Category chosen by the failure kind, e.g. "Connection error".

    Returns:
        str: Text safe to send to the caller.
    """
    if contains_sensitive_data(message):
        return GENERIC_ERROR_MESSAGE
    if label:
        return f"{label}: {message}"
    return message
