"""
Logging Sanitizer Utility

Scrubs request payloads before they are written to the procurement logs.
Credentials never reach a log line; long free text and photo URL lists are shortened.
"""

from typing import Dict, Any, List


# Fields that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'new_password',
    'current_password',
    'confirm_password',
    'password_hash',
    'secret',
    'token',
    'api_key',
    'access_token',
    'refresh_token',
    'session_id',
    'csrf_token',
}

# Free-text fields that are truncated rather than dropped
TRUNCATED_FIELDS = {
    'description',
    'notes',
    'content',
    'manager_notes',
    'rejection_reason',
    'address',
}

MAX_TEXT_LENGTH = 120


def _truncate(value: str, limit: int = MAX_TEXT_LENGTH) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + f"... [{len(value) - limit} more chars]"


def sanitize_dict(data: Dict[str, Any], redact_text: str = '[REDACTED]') -> Dict[str, Any]:
    """
    Sanitize a payload dictionary for logging.

    Args:
        data: Dictionary to sanitize
        redact_text: Text to use for redacted values (default: '[REDACTED]')

    Returns:
        Sanitized copy; the input is never modified

    Example:
        >>> sanitize_dict({'username': 'site1', 'password': 'secret123'})
        {'username': 'site1', 'password': '[REDACTED]'}
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        lowered = key.lower()
        if lowered in SENSITIVE_FIELDS:
            sanitized[key] = redact_text
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, redact_text)
        elif isinstance(value, list):
            sanitized[key] = sanitize_list(value, redact_text, summarize=lowered.endswith('urls'))
        elif lowered in TRUNCATED_FIELDS and isinstance(value, str):
            sanitized[key] = _truncate(value)
        else:
            sanitized[key] = value

    return sanitized


def sanitize_list(values: List[Any], redact_text: str = '[REDACTED]', summarize: bool = False) -> Any:
    """
    Sanitize each element of a list payload (e.g. request items, vendor quotes).

    When summarize is set only the element count is kept.
    """
    if summarize:
        return f"[{len(values)} item(s)]"
    return [
        sanitize_dict(v, redact_text) if isinstance(v, dict) else v
        for v in values
    ]


def sanitize_exception_message(exception: Exception) -> str:
    """
    Message of an exception as it may be logged.

    Domain errors contribute their user-facing message; anything mentioning a
    credential field is replaced by the exception type alone.
    """
    message = getattr(exception, 'message', None) or str(exception)

    if any(field in message.lower() for field in SENSITIVE_FIELDS):
        return f"{type(exception).__name__}: [Message contains sensitive data]"

    return message
