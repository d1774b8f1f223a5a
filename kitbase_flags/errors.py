"""
This submodule contains the exception types raised by the SDK.

Every exception derives from :class:`FlagsError`, so applications that want to handle all SDK
failures in one place can catch that class.
"""

from typing import Any, Optional


class FlagsError(Exception):
    """Base class for all errors raised by the Kitbase flags SDK."""


class AuthenticationError(FlagsError):
    """Raised when the service rejects the API key (HTTP 401). Not retried."""

    def __init__(self, message: str = 'Invalid API key'):
        super().__init__(message)


class ApiError(FlagsError):
    """Raised when the service returns a non-successful status other than those with a dedicated
    exception type. The status and the decoded response body are kept for diagnostics.
    """

    def __init__(self, message: str, status: int, response: Any = None):
        super().__init__(message)
        self._status = status
        self._response = response

    @property
    def status(self) -> int:
        return self._status

    @property
    def response(self) -> Any:
        return self._response


class ValidationError(FlagsError):
    """Raised synchronously, before any I/O, when the caller passes invalid arguments."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self._field = field

    @property
    def field(self) -> Optional[str]:
        return self._field


class RequestTimeoutError(FlagsError):
    """Raised when a request exceeds the connect or read timeout of :class:`kitbase_flags.config.HTTPConfig`."""

    def __init__(self, message: str = 'Request timed out'):
        super().__init__(message)


class NetworkError(FlagsError):
    """Raised when the service could not be reached at all, for instance because the connection was
    refused or the host name could not be resolved."""


class FlagNotFoundError(FlagsError):
    def __init__(self, flag_key: str):
        super().__init__("Flag '%s' not found" % flag_key)
        self._flag_key = flag_key

    @property
    def flag_key(self) -> str:
        return self._flag_key


class TypeMismatchError(FlagsError):
    """Raised when a typed getter is used on a flag whose declared value type is different.

    Unlike a missing or disabled flag, this is treated as a programming error and is never
    silently replaced by the default value.
    """

    def __init__(self, flag_key: str, expected_type: str, actual_type: str):
        super().__init__("Type mismatch for flag '%s': expected %s, got %s" % (flag_key, expected_type, actual_type))
        self._flag_key = flag_key
        self._expected_type = expected_type
        self._actual_type = actual_type

    @property
    def flag_key(self) -> str:
        return self._flag_key

    @property
    def expected_type(self) -> str:
        return self._expected_type

    @property
    def actual_type(self) -> str:
        return self._actual_type


class InvalidContextError(FlagsError):
    """Raised when an evaluation context is not a mapping, or its ``targetingKey`` is not a string."""


class ParseError(FlagsError):
    """Raised when a flag configuration or an evaluation response cannot be decoded."""


class ClientNotReadyError(FlagsError):
    def __init__(self, message: str = 'Client not initialized. Call initialize() first.'):
        super().__init__(message)


__all__ = [
    'FlagsError',
    'AuthenticationError',
    'ApiError',
    'ValidationError',
    'RequestTimeoutError',
    'NetworkError',
    'FlagNotFoundError',
    'TypeMismatchError',
    'InvalidContextError',
    'ParseError',
    'ClientNotReadyError',
]
