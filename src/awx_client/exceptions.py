"""Structured exception classes for the Airwallex client core."""

import json
from typing import Any, Dict, Optional

from .models.api_errors import APIErrorBody


class AwxClientError(Exception):
    """Base exception for all Airwallex client errors.

    This exception serves as the parent class for every error raised by
    the client core, providing a consistent interface for error handling
    by callers.

    :param message: Human-readable error message
    :param code: Optional error code for programmatic handling
    :param details: Optional dictionary containing additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the exception with message, code, and details."""
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format.

        :return: Dictionary containing error code, message, and details
        """
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string.

        :return: JSON-encoded string representation of the exception
        """
        return json.dumps(self.to_dict())


class ConfigurationError(AwxClientError):
    """Raised for invalid client configuration (base URL, credentials)."""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {}
        if setting:
            details["setting"] = setting
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)


class TransportError(AwxClientError):
    """Raised when a round-trip fails below HTTP (network, DNS, TLS, timeout).

    Transport errors are never retried by the client core; the underlying
    ``httpx`` exception is available as ``__cause__``.

    :param message: Description of the transport failure
    :param method: HTTP method of the failed request
    :param url: URL of the failed request
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ):
        details = {}
        if method:
            details["method"] = method
        if url:
            details["url"] = url
        super().__init__(message=message, code="TRANSPORT_ERROR", details=details)
        self.method = method
        self.url = url


class AuthenticationError(AwxClientError):
    """Raised when the login handshake fails.

    No token is installed when this error is raised; any previously
    installed token stays in place for the next attempt.

    :param message: Description of the authentication failure
    :param method: HTTP method of the login request
    :param url: Login URL
    :param status_code: HTTP status returned by the login endpoint, if any
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if method:
            details["method"] = method
        if url:
            details["url"] = url
        if status_code:
            details["status_code"] = status_code
        if method and url and status_code:
            message = f"{method} {url} failed (status {status_code}): {message}"
        super().__init__(
            message=message, code="AUTHENTICATION_ERROR", details=details
        )
        self.method = method
        self.url = url
        self.status_code = status_code


class APIError(AwxClientError):
    """Raised when the API answers with a non-success status.

    Carries the request context (method, path, status) together with the
    parsed error body so callers can decide on their own remediation.

    :param method: HTTP method of the failed request
    :param path: Request path
    :param status_code: HTTP status code from the API response
    :param error: Parsed API error body
    """

    default_code = "API_ERROR"

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int,
        error: Optional[APIErrorBody] = None,
    ):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.error = error or APIErrorBody.unknown()
        details: Dict[str, Any] = {
            "method": method,
            "path": path,
            "status_code": status_code,
            "api_code": self.error.code,
        }
        message = f"{method} {path} failed (status {status_code}): {self.error}"
        super().__init__(message=message, code=self.default_code, details=details)


class ClientError(APIError):
    """Raised for 4xx responses other than 429. Never retried."""

    default_code = "CLIENT_ERROR"


class UnauthorizedError(ClientError):
    """Raised for 401 and 403 responses on regular API calls."""

    default_code = "UNAUTHORIZED"


class RateLimitError(APIError):
    """Raised when a 429 persists after all rate-limit retries.

    :param retry_after: Seconds the server asked to wait, when it said so
    """

    default_code = "RATE_LIMIT_ERROR"

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int = 429,
        error: Optional[APIErrorBody] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(method, path, status_code, error)
        self.retry_after = retry_after
        if retry_after is not None:
            self.details["retry_after"] = retry_after


class ServerError(APIError):
    """Raised for 5xx responses left after the server-error retry policy."""

    default_code = "SERVER_ERROR"


class CircuitOpenError(AwxClientError):
    """Raised before any network attempt while the circuit breaker is open."""

    def __init__(
        self, message: str = "circuit breaker is open, too many recent failures"
    ):
        super().__init__(message=message, code="CIRCUIT_OPEN")


class DecodeError(AwxClientError):
    """Raised when a successful response carries malformed JSON.

    :param message: Description of the decode failure
    :param status_code: Status of the response that failed to decode
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        details = {}
        if status_code:
            details["status_code"] = status_code
        super().__init__(message=message, code="DECODE_ERROR", details=details)
        self.status_code = status_code


class BodyReplayError(AwxClientError):
    """Raised when a retry needs a request body that cannot be replayed."""

    def __init__(self, message: str = "request body cannot be replayed for retry"):
        super().__init__(message=message, code="BODY_REPLAY_ERROR")


class OperationTimeoutError(AwxClientError):
    """Raised when a logical operation exceeds its overall deadline.

    :param message: Description of the timeout
    :param operation: Optional description of the operation that timed out
    :param timeout: The deadline, in seconds, that was exceeded
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if timeout is not None:
            details["timeout"] = timeout
        super().__init__(message=message, code="TIMEOUT_ERROR", details=details)
        self.timeout = timeout


def api_error_for_status(
    method: str,
    path: str,
    status_code: int,
    error: Optional[APIErrorBody] = None,
    retry_after: Optional[float] = None,
) -> APIError:
    """Map a non-success status to the most specific ``APIError`` subclass.

    :param method: HTTP method of the failed request
    :param path: Request path
    :param status_code: HTTP status code of the response
    :param error: Parsed API error body
    :param retry_after: Parsed ``Retry-After`` delay for 429 responses
    :return: Typed API error ready to be raised
    """
    if status_code == 429:
        return RateLimitError(method, path, status_code, error, retry_after)
    if status_code in (401, 403):
        return UnauthorizedError(method, path, status_code, error)
    if 400 <= status_code < 500:
        return ClientError(method, path, status_code, error)
    if status_code >= 500:
        return ServerError(method, path, status_code, error)
    return APIError(method, path, status_code, error)


def is_auth_error(exc: BaseException) -> bool:
    """Return True for login failures and 401/403 API responses."""
    return isinstance(exc, (AuthenticationError, UnauthorizedError))


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when ``exc`` is a terminal rate-limit error."""
    return isinstance(exc, RateLimitError)


def is_circuit_open_error(exc: BaseException) -> bool:
    """Return True when ``exc`` was raised by an open circuit breaker."""
    return isinstance(exc, CircuitOpenError)


def is_not_found_error(exc: Optional[BaseException]) -> bool:
    """Return True when the error indicates a missing resource.

    :param exc: Error to inspect
    :return: True for 404 responses, not-found API codes or messages
    """
    if exc is None:
        return False
    if isinstance(exc, APIError):
        if exc.status_code == 404:
            return True
        return exc.error.code in ("not_found", "resource_not_found") or (
            "not found" in exc.error.message.lower()
        )
    return "not found" in str(exc).lower()
