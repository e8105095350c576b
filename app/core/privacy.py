"""
Helpers to keep personal data and credentials out of console logs.
"""
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SENSITIVE_KEYS = ("password", "token", "secret", "key", "authorization")
REDACTED = "[REDACTED]"


def mask_email(email: str | None) -> str:
    """
    Mask the local part of an email address.

    Example:
        >>> mask_email("joao.silva@example.com")
        'jo***@example.com'
    """
    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    visible = local[:2] if len(local) > 2 else local[:1]
    return f"{visible}***@{domain}"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def sanitize_for_logging(data):
    """
    Return a copy of `data` with sensitive values redacted.

    Dictionaries are walked recursively; any key containing password, token,
    secret, key or authorization has its value replaced.
    """
    if isinstance(data, dict):
        return {
            key: REDACTED if _is_sensitive(str(key)) else sanitize_for_logging(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [sanitize_for_logging(item) for item in data]
    return data


def sanitize_url(url: str) -> str:
    """Redact sensitive query parameters from a URL or path."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, REDACTED if _is_sensitive(key) else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="[]")))
