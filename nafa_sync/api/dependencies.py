"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests with fakes
- Configuration is centralized
- Resource lifecycle (HTTP connection pools) is managed properly

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from functools import lru_cache
from typing import Annotated, AsyncGenerator

import httpx
from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.sync.models import SyncConfig
from ..core.sync.service import AuditSyncService
from ..infrastructure.close.client import CloseClient
from ..infrastructure.monday.client import MondayClient
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.storage.mirror import MirrorPublisher

logger = logging.getLogger(__name__)

# Global mock instance (shared across requests so published files persist)
_mock_storage_client = None


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def build_sync_config(settings: Settings) -> SyncConfig:
    """Translate environment settings into the sync's configuration struct."""
    return SyncConfig(
        monday_api_token=settings.monday_api_token,
        close_api_key=settings.close_api_key,
        file_column_id=settings.nafa_file_column_id,
        lead_id_column_id=settings.close_lead_id_column_id,
        lead_url_field_id=settings.close_nafa_url_field_id,
        mirror_public_url=settings.r2_public_url,
        monday_api_url=settings.monday_api_url,
        close_api_url=settings.close_api_url,
    )


@lru_cache()
def get_sync_config() -> SyncConfig:
    """
    Sync configuration, built once per process.

    For tests, override this dependency or call get_sync_config.cache_clear().
    """
    return build_sync_config(get_settings())


# ---------------------------------------------------------------------------
# Client Dependencies
# ---------------------------------------------------------------------------

async def get_http_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Provide an httpx client for the duration of one request.

    This is a generator so the connection pool is closed once the
    response has been produced.
    """
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield client


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for the public mirror.

    Returns either R2 client or mock client based on settings.
    Both are reused across requests: in mock mode so that published
    files persist during the testing session, and for R2 so the boto3
    client is not rebuilt per notification.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
    )
    return get_r2_storage_client(config)


@lru_cache()
def get_r2_storage_client(config: StorageConfig) -> StorageClient:
    """
    R2 client, created once per process for a given configuration.

    Creating it never talks to R2, so a misconfigured bucket only
    fails the mirror step, never the whole webhook.
    """
    logger.debug("Created R2 storage client")
    return create_storage_client(config=config)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def build_sync_service(
    config: SyncConfig,
    http_client: httpx.AsyncClient,
    storage: StorageClient,
) -> AuditSyncService:
    """Wire the sync service to its Monday, Close and mirror clients."""
    return AuditSyncService(
        config=config,
        source=MondayClient(http_client, config),
        crm=CloseClient(http_client, config),
        mirror=MirrorPublisher(storage, config.mirror_public_url),
    )


def get_sync_service(
    config: Annotated[SyncConfig, Depends(get_sync_config)],
    http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> AuditSyncService:
    """
    Provide an AuditSyncService for one notification.

    The service is stateless, so we create a new instance per request.
    """
    return build_sync_service(config, http_client, storage)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SyncServiceDep = Annotated[AuditSyncService, Depends(get_sync_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
