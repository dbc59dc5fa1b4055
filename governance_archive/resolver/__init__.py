"""
Authority resolution and the verified registry.
"""

from .authority import AuthorityResolver
from .registry import list_verified_registry

__all__ = ["AuthorityResolver", "list_verified_registry"]
