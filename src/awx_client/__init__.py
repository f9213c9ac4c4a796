"""Airwallex API client core.

This package provides the resilient, authenticated HTTP layer used to talk
to the Airwallex payments API: bearer-token lifecycle management, a
status-driven retry policy, a circuit breaker and idempotency-key handling
for financial operations.

:var __version__: Current package version
:type __version__: str
"""

__version__ = "0.1.0"
