"""
Application configuration using Pydantic settings.

Configuration comes from environment variables (or a .env file).
The mirror store supports a mock mode for local development.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
