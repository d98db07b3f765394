"""
Monday.com API client.

Two jobs: one GraphQL query to describe an item (name, Close lead id,
NAFA file assets) and a plain GET to download an asset's bytes.

Only assets from the NAFA file column are requested, so unrelated files
attached to the item never get synced. Of those, only the most recently
created one is kept.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from ...core.sync.models import Asset, SourceItem, StepResult, SyncConfig

logger = logging.getLogger(__name__)


ITEM_QUERY = """
query ($itemId: [ID!]!, $leadColumnId: [String!]!, $columnId: [String!]!) {
  items(ids: $itemId) {
    id
    name
    column_values(ids: $leadColumnId) {
      id
      text
      ... on MirrorValue {
        display_value
      }
    }
    assets(column_ids: $columnId) {
      id
      name
      public_url
      file_extension
      file_size
      created_at
    }
  }
}
"""

# Sort key for assets without a usable timestamp: older than anything real
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse Monday's ISO-8601 timestamps ("2024-01-31T12:00:00Z")."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_asset(raw: dict) -> Asset:
    file_size = raw.get("file_size")
    try:
        file_size = int(file_size) if file_size is not None else None
    except (TypeError, ValueError):
        file_size = None

    return Asset(
        id=str(raw.get("id", "")),
        name=raw.get("name") or "",
        public_url=raw.get("public_url"),
        created_at=parse_timestamp(raw.get("created_at")),
        file_extension=raw.get("file_extension"),
        file_size=file_size,
    )


def latest_asset(assets: list[Asset]) -> list[Asset]:
    """Keep only the most recently created asset (empty list if none)."""
    if not assets:
        return []
    newest = max(assets, key=lambda asset: asset.created_at or _OLDEST)
    return [newest]


def parse_item_response(
    data: dict,
    item_id: str,
    lead_id_column_id: str,
) -> StepResult[SourceItem]:
    """Turn a decoded GraphQL response into a SourceItem."""
    if data.get("errors"):
        return StepResult.failure(f"Monday API errors: {data['errors']}")

    items = (data.get("data") or {}).get("items") or []
    if not items:
        return StepResult.failure(f"Item {item_id} not found")
    item = items[0]

    lead_column = next(
        (
            column for column in item.get("column_values") or []
            if column.get("id") == lead_id_column_id
        ),
        None,
    )
    raw_lead_id = None
    if lead_column:
        raw_lead_id = lead_column.get("text") or lead_column.get("display_value")
    lead_id = raw_lead_id.strip() if isinstance(raw_lead_id, str) else None

    assets = [_parse_asset(raw) for raw in item.get("assets") or []]

    return StepResult.success(SourceItem(
        item_id=str(item.get("id") or item_id),
        name=item.get("name") or "",
        lead_id=lead_id or None,
        assets=latest_asset(assets),
    ))


class MondayClient:
    """
    Implementation of SourcePlatformClient over the Monday.com API.

    The httpx client is owned by the caller so one connection pool
    serves every call made while handling a notification.
    """

    def __init__(self, http: httpx.AsyncClient, config: SyncConfig) -> None:
        self._http = http
        self._config = config

    async def fetch_item(self, item_id: str) -> StepResult[SourceItem]:
        """Fetch name, Close lead id and the latest NAFA file for an item."""
        payload = {
            "query": ITEM_QUERY,
            "variables": {
                "itemId": [str(item_id)],
                "leadColumnId": [self._config.lead_id_column_id],
                "columnId": [self._config.file_column_id],
            },
        }

        try:
            response = await self._http.post(
                self._config.monday_api_url,
                json=payload,
                headers={"Authorization": self._config.monday_api_token},
            )
        except httpx.HTTPError as e:
            logger.error("Monday API request failed", extra={"item_id": item_id, "error": str(e)})
            return StepResult.failure(f"Monday API request failed: {e}")

        if not response.is_success:
            logger.error(
                "Monday API returned an error status",
                extra={"item_id": item_id, "status": response.status_code},
            )
            return StepResult.failure(f"Monday API returned {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return StepResult.failure("Monday API returned invalid JSON")

        if not isinstance(data, dict):
            return StepResult.failure("Monday API returned an unexpected body")

        result = parse_item_response(data, item_id, self._config.lead_id_column_id)
        if not result.ok:
            logger.error("Monday item lookup failed", extra={"item_id": item_id, "error": result.error})
        return result

    async def download_file(self, url: Optional[str]) -> StepResult[bytes]:
        """
        Download a file from its Monday public URL.

        Public URLs are short-lived S3 links and redirect, so redirects
        are followed. Failures are logged and returned, never raised.
        """
        if not url:
            return StepResult.failure("Asset has no public URL")

        try:
            response = await self._http.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.error("File download error", extra={"error": str(e)})
            return StepResult.failure(f"Download failed: {e}")

        if not response.is_success:
            logger.error("Monday file download failed", extra={"status": response.status_code})
            return StepResult.failure(f"Download failed with status {response.status_code}")

        return StepResult.success(response.content)
