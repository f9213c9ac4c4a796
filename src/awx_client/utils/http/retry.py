"""Status-driven retry executor for HTTP round-trips.

This module wraps a single logical HTTP call with the client's retry
policy. The loop is a small state machine:

    attempt -> classify_status -> decide(retry | stop) -> backoff-or-return

- 4xx other than 429 is returned immediately.
- 429 is retried for every method with exponential backoff and jitter,
  honouring ``Retry-After`` when present, since the server did not
  process the request.
- 5xx is recorded against the circuit breaker and retried once after a
  fixed delay, but only for idempotent methods (GET, HEAD, OPTIONS).
- 2xx is recorded as a breaker success.

Backoff sleeps are ordinary awaits, so cancelling the calling task (or
the façade's operation deadline firing) aborts the loop without another
attempt.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import httpx

from ...exceptions import BodyReplayError, CircuitOpenError, TransportError
from ..security import sanitize_url
from .circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class RetryPolicy:
    """Retry tunables for one executor.

    :param max_rate_limit_retries: Retries allowed for 429 responses
    :param max_server_error_retries: Retries allowed for 5xx responses on
                                     idempotent methods
    :param rate_limit_base_delay: Base of the exponential 429 backoff (s)
    :param server_error_retry_delay: Fixed delay before a 5xx retry (s)
    """

    max_rate_limit_retries: int = 3
    max_server_error_retries: int = 1
    rate_limit_base_delay: float = 1.0
    server_error_retry_delay: float = 1.0

    @classmethod
    def from_settings(cls, settings=None) -> "RetryPolicy":
        """Build a policy from :class:`~awx_client.config.settings.Settings`.

        :param settings: Settings instance; the global settings when None
        :return: Retry policy carrying the configured tunables
        """
        if settings is None:
            from ...config.settings import settings as default_settings

            settings = default_settings
        return cls(
            max_rate_limit_retries=settings.max_rate_limit_retries,
            rate_limit_base_delay=settings.rate_limit_base_delay,
            server_error_retry_delay=settings.server_error_retry_delay,
        )


@dataclass
class RetryAttemptContext:
    """Per-call retry bookkeeping; lives for one logical call only."""

    rate_limit_retries: int = 0
    server_error_retries: int = 0
    is_idempotent_method: bool = False


class Outcome(str, Enum):
    """Classification of a response status for the retry loop."""

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    OTHER = "other"


@dataclass(frozen=True)
class Decision:
    """Whether to retry, and how long to wait first."""

    retry: bool
    delay: float = 0.0


STOP = Decision(retry=False)


@dataclass
class OutgoingRequest:
    """A fully formed request handed to the executor.

    :param method: HTTP method
    :param url: Absolute request URL
    :param headers: Request headers, auth and idempotency key included
    :param content: Encoded body for the first attempt
    :param replay: Callable returning a fresh copy of the body for retries
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    replay: Optional[Callable[[], bytes]] = None


def classify_status(status_code: int) -> Outcome:
    """Map an HTTP status code to a retry outcome.

    :param status_code: Response status
    :type status_code: int
    :return: Outcome driving the retry decision
    :rtype: Outcome
    """
    if status_code == 429:
        return Outcome.RATE_LIMITED
    if 200 <= status_code < 300:
        return Outcome.SUCCESS
    if 400 <= status_code < 500:
        return Outcome.CLIENT_ERROR
    if status_code >= 500:
        return Outcome.SERVER_ERROR
    return Outcome.OTHER


def parse_retry_after(
    value: Optional[str], now: Optional[datetime] = None
) -> Optional[float]:
    """Parse a ``Retry-After`` header value.

    Supports both delta-seconds and HTTP-date formats. A date in the past
    yields 0.

    :param value: Raw header value
    :type value: Optional[str]
    :param now: Reference time for HTTP-dates; defaults to UTC now
    :type now: Optional[datetime]
    :return: Delay in seconds, or None when absent or unparsable
    :rtype: Optional[float]
    """
    value = (value or "").strip()
    if not value:
        return None

    if value.isdigit():
        return float(value)

    try:
        retry_date = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparsable Retry-After header: %r", value)
        return None
    if retry_date is None:
        return None
    if retry_date.tzinfo is None:
        retry_date = retry_date.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (retry_date - now).total_seconds())


def compute_backoff(
    attempt: int,
    base_delay: float,
    rand: Callable[[], float] = random.random,
) -> float:
    """Return the 429 backoff for the given retry number.

    The delay is ``base_delay * 2**attempt`` plus jitter drawn uniformly
    from ``[0, half of that)``.

    :param attempt: Zero-based retry number
    :type attempt: int
    :param base_delay: Base delay in seconds
    :type base_delay: float
    :param rand: Source of uniform values in ``[0, 1)``
    :type rand: Callable[[], float]
    :return: Delay in seconds
    :rtype: float
    """
    delay = base_delay * (2**attempt)
    return delay + rand() * (delay / 2)


def decide(
    outcome: Outcome,
    context: RetryAttemptContext,
    policy: RetryPolicy,
    response: Optional[httpx.Response] = None,
) -> Decision:
    """Decide whether a classified response should be retried.

    Updates the retry counters in ``context`` when a retry is granted.

    :param outcome: Classified response status
    :param context: Per-call retry state
    :param policy: Retry tunables
    :param response: Response used for ``Retry-After`` on 429
    :return: The retry decision
    """
    if outcome is Outcome.RATE_LIMITED:
        if context.rate_limit_retries >= policy.max_rate_limit_retries:
            return STOP
        retry_after = None
        if response is not None:
            retry_after = parse_retry_after(response.headers.get("retry-after"))
        if retry_after is None:
            delay = compute_backoff(
                context.rate_limit_retries, policy.rate_limit_base_delay
            )
        else:
            delay = retry_after
        context.rate_limit_retries += 1
        return Decision(retry=True, delay=delay)

    if outcome is Outcome.SERVER_ERROR:
        # Never repeat a possibly half-applied mutation
        if not context.is_idempotent_method:
            return STOP
        if context.server_error_retries >= policy.max_server_error_retries:
            return STOP
        context.server_error_retries += 1
        return Decision(retry=True, delay=policy.server_error_retry_delay)

    return STOP


class RetryExecutor:
    """Perform HTTP round-trips under the retry and circuit-breaker policy.

    :param http_client: Shared ``httpx.AsyncClient``
    :param circuit_breaker: Breaker consulted before every attempt
    :param policy: Retry tunables
    :param sleep: Awaitable sleep used for backoff, ``asyncio.sleep`` by
                  default
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        circuit_breaker: CircuitBreaker,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.http_client = http_client
        self.circuit_breaker = circuit_breaker
        self.policy = policy or RetryPolicy()
        self.sleep = sleep or asyncio.sleep

    async def execute(self, request: OutgoingRequest) -> httpx.Response:
        """Run one logical call, retrying as the policy allows.

        :param request: Request to send
        :type request: OutgoingRequest
        :return: The final response, which may be a non-success status
        :rtype: httpx.Response
        :raises CircuitOpenError: If the breaker is open before an attempt
        :raises TransportError: If a round-trip fails below HTTP
        :raises BodyReplayError: If a retry needs a body that cannot be
                                 replayed
        """
        method = request.method.upper()
        context = RetryAttemptContext(is_idempotent_method=method in IDEMPOTENT_METHODS)
        content = request.content

        while True:
            if self.circuit_breaker.is_open():
                raise CircuitOpenError()

            response = await self._send(method, request, content)
            outcome = classify_status(response.status_code)
            self._record(outcome)

            decision = decide(outcome, context, self.policy, response)
            if not decision.retry:
                return response

            await response.aclose()
            content = self._replay_body(request)
            logger.info(
                "Retrying %s %s after status %d in %.2fs",
                method,
                sanitize_url(request.url),
                response.status_code,
                decision.delay,
            )
            await self.sleep(decision.delay)

    async def _send(
        self, method: str, request: OutgoingRequest, content: Optional[bytes]
    ) -> httpx.Response:
        http_request = self.http_client.build_request(
            method, request.url, headers=request.headers, content=content
        )
        logger.debug("Sending %s %s", method, sanitize_url(request.url))
        try:
            response = await self.http_client.send(http_request)
        except httpx.TransportError as exc:
            url = sanitize_url(request.url)
            raise TransportError(
                f"{method} {url}: {exc.__class__.__name__}: {exc}",
                method=method,
                url=url,
            ) from exc
        logger.debug(
            "Received %d for %s %s",
            response.status_code,
            method,
            sanitize_url(request.url),
        )
        return response

    def _record(self, outcome: Outcome) -> None:
        if outcome is Outcome.SUCCESS:
            self.circuit_breaker.record_success()
        elif outcome is Outcome.SERVER_ERROR:
            self.circuit_breaker.record_failure()

    @staticmethod
    def _replay_body(request: OutgoingRequest) -> Optional[bytes]:
        if request.replay is not None:
            return request.replay()
        if request.content is None:
            return None
        raise BodyReplayError()
