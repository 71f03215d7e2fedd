"""
API Routes.
"""

from . import opportunities, prospects

__all__ = ["opportunities", "prospects"]
