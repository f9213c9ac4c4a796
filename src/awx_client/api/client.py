"""Request façade for the Airwallex API.

:class:`AirwallexClient` composes the client core into one call per
logical operation:

1. make sure a valid bearer token is installed (may log in),
2. attach the auth, API-version and content-type headers,
3. attach a fresh idempotency key to POSTs against financial endpoints,
4. hand the request to the retry executor, which consults and updates
   the circuit breaker.

Each verb runs under an overall deadline, the caller's ``timeout`` or
the configured operation timeout, and raises
:class:`~awx_client.exceptions.OperationTimeoutError` when it expires.

Example:
    >>> async with AirwallexClient.from_settings() as client:
    ...     balances = await client.request_json("GET", "/api/v1/balances/current")
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Dict, Iterable, Optional, TypeVar
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel

from ..auth.token_manager import TokenManager
from ..config.settings import API_VERSION, PRODUCTION_BASE_URL, Settings
from ..exceptions import (
    ConfigurationError,
    DecodeError,
    OperationTimeoutError,
    api_error_for_status,
)
from ..models import parse_api_error
from ..utils.http import (
    IDEMPOTENCY_HEADER,
    CircuitBreaker,
    IdempotencyPolicy,
    OutgoingRequest,
    RetryExecutor,
    RetryPolicy,
    build_http_client,
    generate_idempotency_key,
    parse_retry_after,
)
from ..utils.security import sanitize_headers
from .endpoints import ENDPOINTS

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_METHODS = ("GET", "POST")


def validate_base_url(base_url: Optional[str], require_https: bool = True) -> str:
    """Validate and normalise an API base URL.

    :param base_url: Base URL to validate; None selects production
    :type base_url: Optional[str]
    :param require_https: Reject anything but ``https://``
    :type require_https: bool
    :return: Base URL without trailing slash
    :rtype: str
    :raises ConfigurationError: If the URL is empty or uses a disallowed scheme
    """
    if base_url is None:
        base_url = PRODUCTION_BASE_URL
    base_url = base_url.strip().rstrip("/")
    if not base_url:
        raise ConfigurationError("api base URL cannot be empty", setting="base_url")

    parts = urlsplit(base_url)
    if parts.scheme == "https" and parts.netloc:
        return base_url
    if require_https:
        raise ConfigurationError("api base URL must use HTTPS", setting="base_url")
    if parts.scheme == "http" and parts.netloc:
        return base_url
    raise ConfigurationError(
        "api base URL must start with http:// or https://", setting="base_url"
    )


def _encode_body(body: Any) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    return json.dumps(body).encode("utf-8")


class AirwallexClient:
    """Resilient, authenticated client for the Airwallex API.

    One instance is meant to be shared by many concurrent tasks. Token and
    circuit-breaker state belong to the instance, so separate clients never
    affect each other.

    :param client_id: Airwallex client ID
    :type client_id: str
    :param api_key: Airwallex API key
    :type api_key: str
    :param account_id: Optional account selector for multi-account keys
    :type account_id: Optional[str]
    :param base_url: Explicit base URL (http allowed); production when None
    :type base_url: Optional[str]
    :param settings: Tunables (timeouts, retry, breaker); global when None
    :type settings: Optional[Settings]
    :param transport: Custom httpx transport, mainly for tests
    :type transport: Optional[httpx.AsyncBaseTransport]
    :raises ConfigurationError: On missing credentials or an invalid base URL
    """

    def __init__(
        self,
        client_id: str,
        api_key: str,
        *,
        account_id: Optional[str] = None,
        base_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not client_id or not api_key:
            raise ConfigurationError(
                "client ID and API key are required", setting="credentials"
            )
        if settings is None:
            from ..config.settings import settings as default_settings

            settings = default_settings

        self._base_url = validate_base_url(base_url, require_https=base_url is None)
        self.operation_timeout = settings.operation_timeout

        self.http_client = build_http_client(
            timeout=settings.http_timeout, transport=transport
        )
        self.token_manager = TokenManager(
            self.http_client,
            self._base_url,
            client_id,
            api_key,
            account_id=account_id,
            refresh_buffer=settings.token_refresh_buffer,
        )
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.circuit_breaker_threshold,
            reset_timeout=settings.circuit_breaker_reset_time,
        )
        self.retry_executor = RetryExecutor(
            self.http_client,
            self.circuit_breaker,
            RetryPolicy.from_settings(settings),
        )
        self.idempotency = IdempotencyPolicy(ENDPOINTS.values())

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AirwallexClient":
        """Build a client from environment-backed settings.

        :param settings: Settings to use; the global settings when None
        :type settings: Optional[Settings]
        :param transport: Custom httpx transport
        :type transport: Optional[httpx.AsyncBaseTransport]
        :return: Configured client
        :rtype: AirwallexClient
        :raises ConfigurationError: If credentials are not configured
        """
        if settings is None:
            from ..config.settings import settings as default_settings

            settings = default_settings
        if not settings.has_credentials:
            raise ConfigurationError(
                "AWX_CLIENT_ID and AWX_API_KEY must be set",
                setting="AWX_CLIENT_ID/AWX_API_KEY",
            )
        return cls(
            settings.client_id,
            settings.api_key,
            account_id=settings.account_id,
            base_url=settings.base_url,
            settings=settings,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "AirwallexClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self.http_client.aclose()

    async def get(self, path: str, *, timeout: Optional[float] = None) -> httpx.Response:
        """Send an authenticated GET.

        :param path: Request path, e.g. ``/api/v1/transfers``
        :param timeout: Overall deadline in seconds
        :return: Final response after retries; may be a non-success status
        """
        return await self._with_deadline(self._send("GET", path), timeout, "GET", path)

    async def post(
        self, path: str, body: Any = None, *, timeout: Optional[float] = None
    ) -> httpx.Response:
        """Send an authenticated POST with a JSON body.

        Financial endpoints get a fresh idempotency key, reused by every
        retry of this call.

        :param path: Request path
        :param body: JSON-serialisable payload, pydantic model or raw bytes
        :param timeout: Overall deadline in seconds
        :return: Final response after retries; may be a non-success status
        """
        return await self._with_deadline(
            self._send("POST", path, body), timeout, "POST", path
        )

    async def request_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        ok_statuses: Iterable[int] = (200,),
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a call and decode its JSON response.

        :param method: ``GET`` or ``POST``
        :type method: str
        :param path: Request path
        :type path: str
        :param body: Payload for POST requests
        :type body: Any
        :param ok_statuses: Statuses treated as success
        :type ok_statuses: Iterable[int]
        :param timeout: Overall deadline in seconds
        :type timeout: Optional[float]
        :return: Decoded JSON, or None for an empty body
        :rtype: Any
        :raises ValueError: For unsupported methods
        :raises APIError: For statuses outside ``ok_statuses``
        :raises DecodeError: For malformed JSON in a success response
        """
        method = method.upper()
        if method not in JSON_METHODS:
            raise ValueError(f"unsupported method {method!r}")
        return await self._with_deadline(
            self._request_json(method, path, body, tuple(ok_statuses)),
            timeout,
            method,
            path,
        )

    async def _request_json(
        self, method: str, path: str, body: Any, ok_statuses: tuple
    ) -> Any:
        response = await self._send(method, path, body if method == "POST" else None)
        status = response.status_code

        if status not in ok_statuses:
            error = parse_api_error(response.content)
            retry_after = None
            if status == 429:
                retry_after = parse_retry_after(response.headers.get("retry-after"))
            raise api_error_for_status(method, path, status, error, retry_after)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(
                f"decoding {method} {path} response: {exc}", status_code=status
            ) from exc

    async def _send(self, method: str, path: str, body: Any = None) -> httpx.Response:
        if not path.startswith("/"):
            path = "/" + path
        token = await self.token_manager.ensure_valid_token()

        headers: Dict[str, str] = {
            "Authorization": f"{token.token_type} {token.value}",
            "x-api-version": API_VERSION,
            "Content-Type": "application/json",
        }
        if method == "POST" and self.idempotency.requires_key(path):
            headers[IDEMPOTENCY_HEADER] = generate_idempotency_key()

        content = _encode_body(body)
        request = OutgoingRequest(
            method=method,
            url=self._base_url + path,
            headers=headers,
            content=content,
            replay=(lambda: content) if content is not None else None,
        )
        logger.debug(
            "%s %s headers=%s", method, path, sanitize_headers(request.headers)
        )
        return await self.retry_executor.execute(request)

    async def _with_deadline(
        self,
        operation: Awaitable[T],
        timeout: Optional[float],
        method: str,
        path: str,
    ) -> T:
        deadline = timeout if timeout is not None else self.operation_timeout
        try:
            return await asyncio.wait_for(operation, deadline)
        except asyncio.TimeoutError as exc:
            raise OperationTimeoutError(
                f"{method} {path} timed out after {deadline:.1f}s",
                operation=f"{method} {path}",
                timeout=deadline,
            ) from exc
