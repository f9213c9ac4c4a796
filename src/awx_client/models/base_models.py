"""Shared Pydantic models for the Airwallex client core.

This module contains the authentication models used by the token
manager: the bearer token itself and the login response returned by the
authentication endpoint.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict

# Strict RFC3339 ("...Z", "...+00:00") and the colon-less offset form
# ("2025-12-17T08:25:19+0000") both parse with %z.
EXPIRY_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)

# RFC3339 allows any number of fractional digits; %f takes at most six.
_FRACTION_OVERFLOW = re.compile(r"(\.\d{6})\d+")


def parse_expiry(value: str) -> datetime:
    """Parse a token expiry timestamp into an aware datetime.

    :param value: Timestamp as returned by the login endpoint
    :type value: str
    :return: Timezone-aware expiry
    :rtype: datetime
    :raises ValueError: If the timestamp matches no accepted format
    """
    value = (value or "").strip()
    text = _FRACTION_OVERFLOW.sub(r"\1", value)
    for fmt in EXPIRY_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"parsing expires_at {value!r}: unsupported timestamp format")


class Token(BaseModel):
    """Bearer token for Airwallex API access.

    Tokens are immutable: a refresh replaces the whole object so that
    concurrent readers never observe a half-updated token.

    :param value: The opaque token string
    :type value: str
    :param expires_at: When the token expires (timezone-aware)
    :type expires_at: datetime
    :param token_type: Type of token (default: "Bearer")
    :type token_type: str
    """

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: datetime
    token_type: str = "Bearer"

    def is_valid(
        self, buffer: timedelta, now: Optional[datetime] = None
    ) -> bool:
        """Return whether the token outlives the given safety buffer.

        :param buffer: Minimum remaining lifetime required
        :type buffer: timedelta
        :param now: Current time; defaults to ``datetime.now(timezone.utc)``
        :type now: Optional[datetime]
        :return: True if ``now + buffer`` is strictly before expiry
        :rtype: bool
        """
        now = now or datetime.now(timezone.utc)
        expiry = self.expires_at
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return now + buffer < expiry


class LoginResponse(BaseModel):
    """Body returned by the authentication endpoint."""

    model_config = ConfigDict(extra="ignore")

    token: str = ""
    expires_at: str = ""

    def to_token(self) -> Token:
        """Build a :class:`Token` from the login response.

        :raises ValueError: If the token is missing or the expiry is unparsable
        """
        if not self.token:
            raise ValueError("no token in login response")
        return Token(value=self.token, expires_at=parse_expiry(self.expires_at))
