"""Airwallex API surface: endpoint registry and request façade.

The façade lives in :mod:`awx_client.api.client`; import it from there.
"""

from .endpoints import ENDPOINTS, LOGIN, Endpoint, get_endpoint

__all__ = ["ENDPOINTS", "LOGIN", "Endpoint", "get_endpoint"]
