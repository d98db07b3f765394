"""
Close CRM integration.

Two-step file uploads, lead custom field updates and notes.
"""

from .client import CloseClient

__all__ = ["CloseClient"]
