"""
Object storage client for the public audit file mirror.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
The bucket is served publicly, so whatever lands here is reachable by
anyone holding the URL written to the Close lead.

Mock mode stores objects in memory, enabling webhook testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass(frozen=True)
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    Frozen so it can key the per-process client cache.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Store data under key with the given content type."""
        ...


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. This abstraction means
    we could swap to actual S3, MinIO, or other S3-compatible storage
    with minimal changes.

    boto3 is synchronous, so calls run in a worker thread. The boto3
    client itself is created on first upload; a bad endpoint or missing
    credentials then surface as a StorageError from put_object.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self._s3_client = None

    def _client(self):
        """
        Create the boto3 client once.

        We import boto3 here (not at module level) because
        mock mode doesn't need it.
        """
        if self._s3_client is None:
            import boto3
            from botocore.config import Config

            # R2 requires v4 signatures and has specific endpoint patterns
            boto_config = Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'},
            )

            self._s3_client = boto3.client(
                's3',
                endpoint_url=self._config.endpoint_url,
                aws_access_key_id=self._config.access_key_id,
                aws_secret_access_key=self._config.secret_access_key,
                region_name=self._config.region,
                config=boto_config,
            )

            logger.info(
                "Initialized R2 storage client",
                extra={
                    "bucket": self._config.bucket_name,
                    "endpoint": self._config.endpoint_url,
                }
            )

        return self._s3_client

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """
        Upload an object to R2.

        The content type is stored as HTTP metadata so the public URL
        serves PDFs inline instead of as anonymous downloads.
        """
        try:
            s3_client = self._client()
            await asyncio.to_thread(
                s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )

            logger.debug(
                "Uploaded object",
                extra={"key": key, "size_bytes": len(data)}
            )

        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are stored in a dictionary keyed exactly like R2 keys,
    along with their content types, so tests can inspect what a sync
    would have published.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        # {key: (bytes, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Store object in memory."""
        self._objects[key] = (data, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    def data_of(self, key: str) -> Optional[bytes]:
        """Bytes stored under key, if it exists."""
        stored = self._objects.get(key)
        return stored[0] if stored else None

    def content_type_of(self, key: str) -> Optional[str]:
        """Content type an object was stored with, if it exists."""
        stored = self._objects.get(key)
        return stored[1] if stored else None

    @property
    def keys(self) -> list[str]:
        return list(self._objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Factory function pattern because:
    - Centralizes client creation logic
    - Makes mock vs real decision explicit
    - Simplifies dependency injection in FastAPI

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
