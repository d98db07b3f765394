"""
Public mirror of synced audit files.

Objects are keyed `<itemId>/<filename>` exactly as named in Monday; only
the public URL percent-encodes the filename.
"""

import logging

from ...core.sync.files import mirror_key, mirror_public_url
from ...core.sync.models import StepResult
from .client import StorageClient

logger = logging.getLogger(__name__)


class MirrorPublisher:
    """Implementation of MirrorWriter on top of any StorageClient."""

    def __init__(self, storage: StorageClient, public_base_url: str) -> None:
        self._storage = storage
        self._public_base_url = public_base_url

    async def publish(
        self,
        item_id: str,
        filename: str,
        content_type: str,
        data: bytes,
    ) -> StepResult[str]:
        """Store the file and return its public URL."""
        key = mirror_key(item_id, filename)

        try:
            await self._storage.put_object(key, data, content_type)
        except Exception as e:
            logger.error("R2 upload error", extra={"key": key, "error": str(e)})
            return StepResult.failure(f"R2 upload error: {e}")

        public_url = mirror_public_url(self._public_base_url, item_id, filename)
        logger.info("File uploaded to R2", extra={"public_url": public_url})
        return StepResult.success(public_url)
