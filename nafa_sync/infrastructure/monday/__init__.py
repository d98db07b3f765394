"""
Monday.com integration.

Fetches item metadata via GraphQL and downloads file assets.
"""

from .client import MondayClient

__all__ = ["MondayClient"]
