"""Idempotency-key policy for financial operations.

Whether a request must carry an ``x-idempotency-key`` header is declared
once, on the endpoint registry, via ``requires_idempotency_key``. This
module derives the list of flagged path patterns from the registry on
first use and matches outgoing request paths against it.

Patterns may contain ``{id}`` placeholders. A placeholder matches exactly
one non-empty path segment, including a trailing one; the literal text
around it must match in full.
"""

import re
import secrets
import threading
from typing import Iterable, List, Optional, Pattern

IDEMPOTENCY_KEY_BYTES = 16
IDEMPOTENCY_HEADER = "x-idempotency-key"
PLACEHOLDER = "{id}"


def generate_idempotency_key() -> str:
    """Return a fresh idempotency key: 16 random bytes as 32 hex chars."""
    return secrets.token_hex(IDEMPOTENCY_KEY_BYTES)


def _compile_pattern(pattern: str) -> Pattern[str]:
    literals = pattern.split(PLACEHOLDER)
    return re.compile("[^/]+".join(re.escape(part) for part in literals))


def match_endpoint_path(path: str, pattern: str) -> bool:
    """Return whether a concrete path matches an endpoint pattern.

    >>> match_endpoint_path("/api/v1/transfers/create", "/api/v1/transfers/create")
    True
    >>> match_endpoint_path("/resource/abc123/submit", "/resource/{id}/submit")
    True
    >>> match_endpoint_path("/resource//submit", "/resource/{id}/submit")
    False

    :param path: Request path without query string
    :type path: str
    :param pattern: Registry path pattern, possibly with ``{id}``
    :type pattern: str
    :return: True on a full match
    :rtype: bool
    """
    if PLACEHOLDER not in pattern:
        return path == pattern
    return _compile_pattern(pattern).fullmatch(path) is not None


def _strip_query(path: str) -> str:
    return path.split("?", 1)[0]


class IdempotencyPolicy:
    """Decide which request paths need an idempotency key.

    :param endpoints: Endpoint descriptors to derive the policy from; each
                      needs ``path`` and ``requires_idempotency_key``
    """

    def __init__(self, endpoints: Iterable):
        self._endpoints = endpoints
        self._patterns: Optional[List[Pattern[str]]] = None
        self._lock = threading.Lock()

    @property
    def patterns(self) -> List[Pattern[str]]:
        """Compiled patterns of flagged endpoints, built once on first use."""
        if self._patterns is None:
            with self._lock:
                if self._patterns is None:
                    self._patterns = [
                        _compile_pattern(endpoint.path)
                        for endpoint in self._endpoints
                        if endpoint.requires_idempotency_key
                    ]
        return self._patterns

    def requires_key(self, path: str) -> bool:
        """Return whether a request to ``path`` must carry a key.

        :param path: Request path, query string allowed
        :type path: str
        :return: True for flagged (financial) operations
        :rtype: bool
        """
        path = _strip_query(path)
        return any(pattern.fullmatch(path) for pattern in self.patterns)


_default_policy: Optional[IdempotencyPolicy] = None
_default_policy_lock = threading.Lock()


def default_policy() -> IdempotencyPolicy:
    """Return the policy built from the built-in endpoint registry."""
    global _default_policy
    if _default_policy is None:
        with _default_policy_lock:
            if _default_policy is None:
                from ...api.endpoints import ENDPOINTS

                _default_policy = IdempotencyPolicy(ENDPOINTS.values())
    return _default_policy


def is_financial_operation(path: str) -> bool:
    """Return whether ``path`` is a registered financial operation.

    :param path: Request path, query string allowed
    :type path: str
    :return: True when the registry flags the matching endpoint
    :rtype: bool
    """
    return default_policy().requires_key(path)
