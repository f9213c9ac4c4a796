"""Bearer token lifecycle for the Airwallex API.

This module logs in with long-lived client credentials and keeps the
resulting short-lived bearer token fresh. Many tasks share one manager:

- The fast path reads the current token reference without awaiting and
  returns it while it outlives the refresh buffer.
- The slow path serialises refreshes behind an ``asyncio.Lock`` and
  re-checks validity after acquiring it, so N concurrent callers with no
  usable token cause exactly one login round-trip.

A refreshed token replaces the previous one with a single assignment.
A failed login raises :class:`AuthenticationError` and leaves whatever
token was installed before untouched.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from ..api.endpoints import LOGIN
from ..exceptions import AuthenticationError
from ..models import LoginResponse, Token, parse_api_error

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_BUFFER = 60.0
LOGIN_SUCCESS_STATUSES = (200, 201)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Own and refresh the bearer token used for API calls.

    :param http_client: Shared ``httpx.AsyncClient`` used for login
    :param base_url: API base URL, without trailing slash
    :param client_id: Airwallex client ID
    :param api_key: Airwallex API key
    :param account_id: Optional account selector sent as ``x-login-as``
    :param refresh_buffer: Seconds of remaining lifetime below which the
                           token is refreshed
    :param clock: Source of the current UTC time, injectable for tests
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        client_id: str,
        api_key: str,
        account_id: Optional[str] = None,
        refresh_buffer: float = DEFAULT_REFRESH_BUFFER,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.api_key = api_key
        self.account_id = account_id
        self.refresh_buffer = timedelta(seconds=refresh_buffer)
        self._clock = clock
        self._token: Optional[Token] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def token(self) -> Optional[Token]:
        """The currently installed token, if any."""
        return self._token

    @property
    def login_url(self) -> str:
        return self.base_url + LOGIN.path

    def _usable(self, token: Optional[Token]) -> bool:
        return token is not None and token.is_valid(
            self.refresh_buffer, now=self._clock()
        )

    async def ensure_valid_token(self) -> Token:
        """Return a token that outlives the refresh buffer.

        :return: A valid bearer token
        :rtype: Token
        :raises AuthenticationError: If a required login fails
        """
        token = self._token
        if self._usable(token):
            return token

        async with self._refresh_lock:
            # Another task may have refreshed while we waited
            token = self._token
            if self._usable(token):
                return token

            token = await self._login()
            self._token = token
            logger.debug("Installed new access token, expires at %s", token.expires_at)
            return token

    def invalidate(self) -> None:
        """Drop the cached token so the next call logs in again."""
        self._token = None

    def _login_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "x-client-id": self.client_id,
            "x-api-key": self.api_key,
        }
        if self.account_id:
            headers["x-login-as"] = self.account_id
        return headers

    async def _login(self) -> Token:
        """Perform the login handshake.

        :return: Freshly issued token
        :rtype: Token
        :raises AuthenticationError: On transport failure, unexpected status
                                     or an unusable response body
        """
        method, url = LOGIN.method, self.login_url
        logger.debug("Requesting access token from %s", url)

        try:
            response = await self.http_client.post(url, headers=self._login_headers())
        except httpx.HTTPError as exc:
            raise AuthenticationError(
                f"{method} {url}: {exc.__class__.__name__}: {exc}",
                method=method,
                url=url,
            ) from exc

        if response.status_code not in LOGIN_SUCCESS_STATUSES:
            error = parse_api_error(response.content)
            raise AuthenticationError(
                f"authentication failed: {error}",
                method=method,
                url=url,
                status_code=response.status_code,
            )

        try:
            login = LoginResponse.model_validate(response.json())
            return login.to_token()
        except (ValidationError, ValueError) as exc:
            raise AuthenticationError(
                f"invalid login response: {exc}",
                method=method,
                url=url,
                status_code=response.status_code,
            ) from exc
