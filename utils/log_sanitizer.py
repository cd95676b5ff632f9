"""Log sanitizer - strips credentials and personal data before text hits the log file.

Reminder bodies are free text typed by users, and httpx error strings can carry
request URLs, so both go through here before being logged.
"""

import re
from typing import Union

SENSITIVE_PATTERNS = [
    # Discord bot tokens (base64 id . timestamp . hmac)
    (r'\b[A-Za-z\d_-]{24,28}\.[A-Za-z\d_-]{6}\.[A-Za-z\d_-]{27,40}\b', '[DISCORD_TOKEN]'),

    # JWTs, which is what Supabase anon/service keys are
    (r'eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+', '[JWT_TOKEN]'),

    # Bearer / Basic auth values
    (r'(Bearer|Basic)\s+[A-Za-z0-9\-_\.]+', r'\1 [REDACTED]'),

    # apikey=... in query strings and key=value pairs
    (r'(password|secret|token|api_?key|auth|credential)["\s:=]+[^\s,&}"\']{8,}', r'\1=[REDACTED]'),

    # Email addresses
    (r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[EMAIL]'),

    # Card-like digit runs
    (r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b', '[CARD]'),
]

_COMPILED_PATTERNS = [(re.compile(p, re.IGNORECASE), r) for p, r in SENSITIVE_PATTERNS]


def sanitize_log(text: str) -> str:
    """Replace sensitive substrings with placeholders."""
    if not text:
        return text

    result = text
    for pattern, replacement in _COMPILED_PATTERNS:
        result = pattern.sub(replacement, result)

    return result


def sanitize_for_log(value: Union[str, bytes, None], max_length: int = 120) -> str:
    """Sanitize and truncate a value for logging.

    Args:
        value: Text, bytes or None
        max_length: Maximum length of the returned string

    Returns:
        Sanitized, truncated string safe for logging
    """
    if value is None:
        return "<None>"

    if isinstance(value, bytes):
        text = value.decode("utf-8", errors="replace")
    else:
        text = str(value)

    sanitized = sanitize_log(text)

    if len(sanitized) > max_length:
        return sanitized[:max_length] + f"... [{len(text)} chars total]"

    return sanitized
