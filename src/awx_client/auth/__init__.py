"""Authentication for the Airwallex client core.

:var __all__: List of public exports from this module
:type __all__: List[str]
"""

from .token_manager import TokenManager

__all__ = ["TokenManager"]
