"""HTTP utilities public API (barrel module).

This package provides:
- Pooled client construction with strict TLS
- Circuit breaker
- Status-driven retry executor
- Idempotency-key policy for financial operations

Recommended import pattern for consumers:
    from awx_client.utils.http import RetryExecutor, CircuitBreaker

This keeps call sites stable even if internal modules are reorganized.
"""

from .circuit_breaker import CircuitBreaker, CircuitState
from .client_manager import (
    build_http_client,
    create_limits,
    create_ssl_context,
    create_timeout,
)
from .idempotency import (
    IDEMPOTENCY_HEADER,
    IdempotencyPolicy,
    generate_idempotency_key,
    is_financial_operation,
    match_endpoint_path,
)
from .retry import (
    IDEMPOTENT_METHODS,
    Decision,
    OutgoingRequest,
    Outcome,
    RetryAttemptContext,
    RetryExecutor,
    RetryPolicy,
    classify_status,
    compute_backoff,
    decide,
    parse_retry_after,
)

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "build_http_client",
    "create_limits",
    "create_ssl_context",
    "create_timeout",
    "IDEMPOTENCY_HEADER",
    "IdempotencyPolicy",
    "generate_idempotency_key",
    "is_financial_operation",
    "match_endpoint_path",
    "IDEMPOTENT_METHODS",
    "Decision",
    "OutgoingRequest",
    "Outcome",
    "RetryAttemptContext",
    "RetryExecutor",
    "RetryPolicy",
    "classify_status",
    "compute_backoff",
    "decide",
    "parse_retry_after",
]
