"""
NAFA Audit Sync - Monday.com to Close CRM file sync service.

This package contains the complete application:
- core: Framework-agnostic sync logic (notification parsing, orchestration)
- infrastructure: External service integrations (Monday, Close, R2)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
