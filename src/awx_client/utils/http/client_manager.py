"""HTTP client construction with bounded pooling and strict TLS.

This module builds the ``httpx.AsyncClient`` shared by every request a
client makes. The pool is bounded, certificate verification is always
on and TLS 1.2 is the minimum protocol version. Tests pass an
``httpx.MockTransport`` through ``transport``.
"""

import logging
import ssl
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT = 30.0
MAX_IDLE_CONNECTIONS = 100
MAX_CONNECTIONS_PER_HOST = 10
IDLE_CONNECTION_TIMEOUT = 90.0


def create_timeout(timeout: float = DEFAULT_HTTP_TIMEOUT) -> httpx.Timeout:
    """Create a per-request timeout configuration.

    :param timeout: Timeout in seconds applied to connect, read, write
                    and pool acquisition
    :type timeout: float
    :return: Configured timeout object
    :rtype: httpx.Timeout
    """
    return httpx.Timeout(timeout)


def create_limits(
    max_keepalive_connections: int = MAX_IDLE_CONNECTIONS,
    max_connections: int = MAX_CONNECTIONS_PER_HOST,
    keepalive_expiry: float = IDLE_CONNECTION_TIMEOUT,
) -> httpx.Limits:
    """Create a connection limits configuration object.

    The client only ever talks to one host, so the total connection cap
    doubles as the per-host cap.

    :param max_keepalive_connections: Maximum number of idle connections
    :type max_keepalive_connections: int
    :param max_connections: Maximum total number of connections
    :type max_connections: int
    :param keepalive_expiry: Idle connection expiry time in seconds
    :type keepalive_expiry: float
    :return: Configured limits object
    :rtype: httpx.Limits
    """
    return httpx.Limits(
        max_keepalive_connections=max_keepalive_connections,
        max_connections=max_connections,
        keepalive_expiry=keepalive_expiry,
    )


def create_ssl_context() -> ssl.SSLContext:
    """Create a verifying TLS context that refuses anything below TLS 1.2."""
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def build_http_client(
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    limits: Optional[httpx.Limits] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the pooled async client used for API traffic.

    :param timeout: Per-request timeout in seconds
    :type timeout: float
    :param limits: Connection limits; bounded defaults when None
    :type limits: Optional[httpx.Limits]
    :param transport: Custom transport, e.g. ``httpx.MockTransport``
    :type transport: Optional[httpx.AsyncBaseTransport]
    :return: Configured client; the caller owns and closes it
    :rtype: httpx.AsyncClient
    """
    kwargs = {
        "timeout": create_timeout(timeout),
        "limits": limits or create_limits(),
        "follow_redirects": False,
    }
    if transport is not None:
        kwargs["transport"] = transport
    else:
        kwargs["verify"] = create_ssl_context()
    logger.debug("Creating HTTP client with timeout=%.1fs", timeout)
    return httpx.AsyncClient(**kwargs)
