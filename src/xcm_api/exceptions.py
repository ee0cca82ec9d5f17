"""Exception hierarchy for the XCM transfer submission engine."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .types import AttemptFailure


class XCMError(Exception):
    """Base exception for all transfer submission errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(XCMError):
    """Raised when required configuration is missing or malformed."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.key = key


class ValidationError(XCMError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class NetworkError(XCMError):
    """Raised when network/connection issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class BuildFailure(NetworkError):
    """Raised when a transfer cannot be constructed against an endpoint pair."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        attempt: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, endpoint=endpoint, status_code=status_code, details=details)
        self.attempt = attempt


class SubmissionFailure(NetworkError):
    """Raised when signing or submitting a payload fails."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        attempt: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, endpoint=endpoint, status_code=status_code, details=details)
        self.attempt = attempt


class ValidationFailure(XCMError):
    """Raised when a dry-run preview rejects the transfer."""

    def __init__(
        self,
        message: str,
        attempt: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.attempt = attempt


class ExhaustedRetries(XCMError):
    """Raised after every attempt in the retry budget has failed."""

    def __init__(
        self,
        message: str,
        attempts: int,
        failures: Sequence[AttemptFailure] = (),
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.attempts = attempts
        self.failures = tuple(failures)

    @property
    def last_error(self) -> BaseException | None:
        if not self.failures:
            return None
        return self.failures[-1].error


class MethodNotImplementedError(XCMError):
    """Raised when an optional capability is not provided."""

    def __init__(self, method_name: str):
        super().__init__(f"Method '{method_name}' is not yet implemented")
        self.method_name = method_name
