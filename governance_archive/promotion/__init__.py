"""
Promotion of uploads into certified artifacts.
"""

from .coordinator import PromotionCoordinator

__all__ = ["PromotionCoordinator"]
