import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from kitbase_flags.errors import ValidationError

log = logging.getLogger('kitbase_flags')

_RETRYABLE_STATUSES = [400, 408, 429]


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def is_http_error_recoverable(status):
    if status >= 400 and status < 500:
        return status in _RETRYABLE_STATUSES  # all other 4xx besides these are unrecoverable
    return True  # all other errors are recoverable


def http_error_description(status):
    return "HTTP error %d%s" % (status, " (invalid API key)" if (status == 401 or status == 403) else "")


def http_error_message(status, context, retryable_message="will retry"):
    return "Received %s for %s - %s" % (http_error_description(status), context, retryable_message if is_http_error_recoverable(status) else "check the API key")


def parse_response_body(data: Optional[bytes]) -> Any:
    """
    Decodes an error response body for diagnostics; returns None if it is not JSON.
    """
    if not data:
        return None
    try:
        return json.loads(data.decode('UTF-8'))
    except ValueError:
        return None


def error_message_from_body(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        if 'message' in body:
            return str(body['message'])
        if 'error' in body:
            return str(body['error'])
    return fallback


def validate_flag_key(key: Any):
    if not isinstance(key, str) or key == '':
        raise ValidationError("Flag key is required", "flag_key")


def same_json_value(a: Any, b: Any) -> bool:
    """
    Compares two JSON values, treating booleans as distinct from numbers (``1`` is not ``true``).
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, dict):
        return isinstance(b, dict) and a.keys() == b.keys() and all(same_json_value(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)):
        return isinstance(b, (list, tuple)) and len(a) == len(b) and all(same_json_value(x, y) for x, y in zip(a, b))
    return a == b
