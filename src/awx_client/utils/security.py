"""Security utilities for credential redaction and secure logging.

This module keeps API credentials out of log output:
- Pattern-based redaction of bearer tokens and API keys in strings
- Header and URL sanitization for request/response logging
- A logging formatter that sanitizes every record
- One-shot logging setup driven by the configured log level
"""

import copy
import logging
import re
import sys
from typing import Any, Dict, Optional

# Patterns for sensitive data detection
SENSITIVE_PATTERNS = {
    "jwt_token": re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
    "bearer_token": re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    "api_key": re.compile(r"[A-Za-z0-9]{40,}"),
}

# Headers that should never be logged
SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "x-client-id",
    "x-login-as",
    "cookie",
    "set-cookie",
}

SENSITIVE_URL_PARAMS = (
    "token",
    "key",
    "secret",
    "password",
    "api_key",
    "client_id",
)


def sanitize_string(value: str, partial: bool = False) -> str:
    """Sanitize a string containing potential sensitive data.

    :param value: String to sanitize
    :type value: str
    :param partial: If True, show length instead of full redaction
    :type partial: bool
    :return: Sanitized string with sensitive data redacted
    :rtype: str
    """
    if not value:
        return value
    for pattern_name, pattern in SENSITIVE_PATTERNS.items():
        if pattern.search(value):
            if partial:
                value = pattern.sub(
                    lambda m: f"<{pattern_name}:length={len(m.group(0))}>", value
                )
            else:
                value = pattern.sub(f"<{pattern_name}:REDACTED>", value)
    return value


def sanitize_headers(headers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Sanitize HTTP headers for logging.

    Redacts credential headers (Authorization, x-api-key, x-client-id,
    x-login-as) and scrubs token-like values from the rest.

    :param headers: Mapping of HTTP headers
    :type headers: Optional[Dict[str, Any]]
    :return: Sanitized copy of the headers
    :rtype: Dict[str, Any]
    """
    if not headers:
        return {}
    sanitized = copy.deepcopy(dict(headers))
    for key, value in dict(headers).items():
        lower_key = key.lower()
        if lower_key in SENSITIVE_HEADERS:
            if isinstance(value, str) and len(value) > 0:
                sanitized[key] = f"<REDACTED:length={len(value)}>"
            else:
                sanitized[key] = "<REDACTED>"
        elif isinstance(value, str):
            sanitized[key] = sanitize_string(value)
    return sanitized


def sanitize_url(url: str) -> str:
    """Redact credential-like query parameters from a URL.

    :param url: URL to sanitize
    :type url: str
    :return: URL with sensitive parameter values replaced
    :rtype: str
    """
    if not url:
        return url
    for param in SENSITIVE_URL_PARAMS:
        url = re.sub(
            rf"([?&]{param}=)[^&\s]+", r"\1<REDACTED>", url, flags=re.IGNORECASE
        )
    return url


class SanitizingFormatter(logging.Formatter):
    """Formatter that automatically sanitizes sensitive data.

    The record message is rendered with its arguments first so that
    credentials passed as ``%s`` arguments are redacted too.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.args:
            try:
                record.msg = sanitize_string(record.msg % record.args)
                record.args = None
            except (TypeError, ValueError):
                record.msg = sanitize_string(str(record.msg))
                record.args = tuple(
                    sanitize_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        else:
            record.msg = sanitize_string(str(record.msg))
        return super().format(record)


# Global flag to track if logging has been set up
_LOGGING_CONFIGURED = False


def setup_secure_logging(level: Optional[str] = None, force: bool = False) -> None:
    """Set up logging with automatic sanitization.

    Installs a single stdout handler using :class:`SanitizingFormatter` on
    the root logger. Repeated calls are no-ops unless ``force`` is set.

    :param level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
                  defaults to the configured ``LOG_LEVEL``
    :type level: Optional[str]
    :param force: Reconfigure even if logging was already set up
    :type force: bool
    """
    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED and not force:
        logging.getLogger(__name__).debug(
            "Logging already configured, skipping duplicate setup"
        )
        return

    if level is None:
        from ..config.settings import settings

        level = settings.log_level

    formatter = SanitizingFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=[handler],
        force=True,
    )

    # httpx logs every request at INFO, including full URLs
    logging.getLogger("httpx").setLevel(
        max(logging.WARNING, getattr(logging, level.upper()))
    )

    _LOGGING_CONFIGURED = True
