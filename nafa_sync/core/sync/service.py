"""
Sync orchestration: from a Monday notification to a Close note.

This module is the "core" of the service. It knows the order of the steps
and what to do when each one fails, but nothing about HTTP, GraphQL or S3.
The clients it drives are described by Protocols so tests can hand in
fakes and the real implementations stay in the infrastructure layer.

Per asset the sequence is:

    download -> CRM upload -> mirror upload -> field update -> note

and FAILURE_POLICY says what a failed step means for the rest of it.
"""

import logging
from datetime import date
from typing import Any, Callable, Optional, Protocol

from .files import build_note_text, content_type_for
from .models import (
    Asset,
    AssetSyncReport,
    FailurePolicy,
    NoteAttachment,
    NotificationKind,
    OutcomeKind,
    SourceItem,
    StepResult,
    SyncConfig,
    SyncOutcome,
    SyncStep,
)
from .notifications import normalize_notification, parse_notification

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class SourcePlatformClient(Protocol):
    """Read side: Monday.com items and their files."""

    async def fetch_item(self, item_id: str) -> StepResult[SourceItem]:
        """Fetch name, lead id and the latest NAFA file of an item."""
        ...

    async def download_file(self, url: Optional[str]) -> StepResult[bytes]:
        """Fetch the raw bytes behind an asset's public URL."""
        ...


class CrmClient(Protocol):
    """Write side: Close CRM files, lead fields and notes."""

    async def upload_file(
        self,
        filename: str,
        content_type: str,
        data: bytes,
    ) -> StepResult[str]:
        """Upload a file and return its Close download URL."""
        ...

    async def update_lead_field(self, lead_id: str, url: str) -> StepResult[None]:
        """Point the lead's NAFA URL custom field at `url`."""
        ...

    async def create_note(
        self,
        lead_id: str,
        note_text: str,
        attachment: NoteAttachment,
    ) -> StepResult[None]:
        """Create a note on the lead with one file attachment."""
        ...


class MirrorWriter(Protocol):
    """Public copy of each synced file."""

    async def publish(
        self,
        item_id: str,
        filename: str,
        content_type: str,
        data: bytes,
    ) -> StepResult[str]:
        """Store the file and return its public URL."""
        ...


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

FAILURE_POLICY: dict[SyncStep, FailurePolicy] = {
    SyncStep.FETCH_ITEM: FailurePolicy.ABORT_INVOCATION,
    SyncStep.DOWNLOAD: FailurePolicy.SKIP_ASSET,
    SyncStep.CRM_UPLOAD: FailurePolicy.SKIP_ASSET,
    SyncStep.MIRROR_UPLOAD: FailurePolicy.SKIP_SUBSTEP,
    SyncStep.FIELD_UPDATE: FailurePolicy.CONTINUE,
    SyncStep.NOTE_CREATE: FailurePolicy.CONTINUE,
}

# Policies that end the current asset
STOPPING_POLICIES = (FailurePolicy.SKIP_ASSET, FailurePolicy.ABORT_INVOCATION)

# Steps that only run when the step they depend on succeeded
SUBSTEP_OF: dict[SyncStep, SyncStep] = {
    SyncStep.MIRROR_UPLOAD: SyncStep.FIELD_UPDATE,
}


# ---------------------------------------------------------------------------
# Sync Service
# ---------------------------------------------------------------------------

class AuditSyncService:
    """
    Runs one notification through the sync pipeline.

    Stateless beyond its dependencies: every call fetches fresh data and
    nothing carries over to the next notification. There are no retries;
    Monday's own redelivery is the only retry mechanism, which is why
    ignorable conditions answer 200.
    """

    def __init__(
        self,
        config: SyncConfig,
        source: SourcePlatformClient,
        crm: CrmClient,
        mirror: MirrorWriter,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._config = config
        self._source = source
        self._crm = crm
        self._mirror = mirror
        self._today = today

    async def handle_notification(self, body: Any) -> SyncOutcome:
        """Entry point for the webhook: normalize, then sync the item."""
        notification = parse_notification(body)
        normalized = normalize_notification(notification, self._config.file_column_id)

        if normalized.kind == NotificationKind.CHALLENGE:
            logger.info("Answering webhook challenge")
            return SyncOutcome.for_challenge(normalized.challenge)

        if normalized.kind == NotificationKind.IGNORED:
            logger.info("Ignoring notification", extra={"reason": normalized.reason})
            return SyncOutcome.ignored(normalized.reason)

        if normalized.kind == NotificationKind.NO_ITEM_ID:
            logger.error("Could not extract item ID from payload")
            return SyncOutcome.ignored(normalized.reason)

        return await self.sync_item(normalized.item_id)

    async def sync_item(self, item_id: str) -> SyncOutcome:
        """Sync the latest NAFA file of one Monday item to its Close lead."""
        logger.info("Processing NAFA file upload", extra={"item_id": item_id})

        fetched = await self._source.fetch_item(item_id)
        if not fetched.ok:
            logger.error(
                "Failed to fetch item data",
                extra={"item_id": item_id, "error": fetched.error},
            )
            return SyncOutcome.failed("Failed to fetch item data", item_id=item_id)

        item = fetched.value
        if not item.lead_id:
            logger.error(
                "No Close Lead ID found for item",
                extra={"item_id": item_id, "item_name": item.name},
            )
            return SyncOutcome.ignored("No Close Lead ID on item", item_id=item_id)

        if not item.assets:
            logger.error("No file assets found for item", extra={"item_id": item_id})
            return SyncOutcome.ignored("No file assets found", item_id=item_id)

        reports = []
        for asset in item.assets:
            report = await self._sync_asset(item, asset)
            reports.append(report)
            if any(FAILURE_POLICY[step] == FailurePolicy.ABORT_INVOCATION for step in report.errors):
                break

        return SyncOutcome(
            kind=OutcomeKind.COMPLETED,
            status_code=200,
            message="OK",
            item_id=item_id,
            reports=reports,
        )

    async def _sync_asset(self, item: SourceItem, asset: Asset) -> AssetSyncReport:
        report = AssetSyncReport(asset_name=asset.name)
        log_extra = {"item_id": item.item_id, "asset_id": asset.id, "file_name": asset.name}
        logger.info("Processing file", extra=log_extra)

        downloaded = await self._source.download_file(asset.public_url)
        if self._stop_on_failure(SyncStep.DOWNLOAD, downloaded, report, log_extra):
            return report
        data = downloaded.value

        content_type = content_type_for(asset.name)

        uploaded = await self._crm.upload_file(asset.name, content_type, data)
        if self._stop_on_failure(SyncStep.CRM_UPLOAD, uploaded, report, log_extra):
            return report
        report.crm_file_url = uploaded.value

        mirrored = await self._mirror.publish(item.item_id, asset.name, content_type, data)
        self._stop_on_failure(SyncStep.MIRROR_UPLOAD, mirrored, report, log_extra)
        if mirrored.ok:
            report.mirror_url = mirrored.value

        if report.status_of(SyncStep.FIELD_UPDATE) is None:
            updated = await self._crm.update_lead_field(item.lead_id, report.mirror_url)
            self._stop_on_failure(SyncStep.FIELD_UPDATE, updated, report, log_extra)

        note_text = build_note_text(
            asset.name,
            item.name,
            today=self._today() if self._today else None,
        )
        attachment = NoteAttachment(
            url=report.crm_file_url,
            filename=asset.name,
            content_type=content_type,
        )
        noted = await self._crm.create_note(item.lead_id, note_text, attachment)
        self._stop_on_failure(SyncStep.NOTE_CREATE, noted, report, log_extra)

        if report.note_created:
            logger.info(
                "Successfully synced file to Close lead",
                extra={**log_extra, "lead_id": item.lead_id},
            )
        else:
            logger.error(
                "Failed to create note on Close lead",
                extra={**log_extra, "lead_id": item.lead_id},
            )

        return report

    def _stop_on_failure(
        self,
        step: SyncStep,
        result: StepResult,
        report: AssetSyncReport,
        log_extra: dict,
    ) -> bool:
        """
        Record a step result and apply its failure policy.

        Returns True when the rest of the asset should be skipped.
        """
        report.record(step, result)
        if result.ok:
            return False

        policy = FAILURE_POLICY[step]
        logger.error(
            "Sync step failed",
            extra={
                **log_extra,
                "step": step.value,
                "policy": policy.value,
                "error": result.error,
            },
        )

        if policy == FailurePolicy.SKIP_SUBSTEP:
            report.skip(SUBSTEP_OF[step])
        return policy in STOPPING_POLICIES
