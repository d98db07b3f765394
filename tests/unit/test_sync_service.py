"""
Unit tests for the sync orchestration.

The service is driven with in-memory fakes for Monday, Close and the
mirror, so these tests are about step order and failure handling only:
which steps run after which failures, and what the webhook answers.
"""

from datetime import date

import pytest

from nafa_sync.core.sync.models import (
    Asset,
    FailurePolicy,
    OutcomeKind,
    SourceItem,
    StepResult,
    StepStatus,
    SyncStep,
)
from nafa_sync.core.sync.service import FAILURE_POLICY, AuditSyncService


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeSource:
    def __init__(self, item=None, fetch_ok=True, download_ok=True):
        self.item = item
        self.fetch_ok = fetch_ok
        self.download_ok = download_ok
        self.fetched = []
        self.downloaded = []

    async def fetch_item(self, item_id):
        self.fetched.append(item_id)
        if not self.fetch_ok:
            return StepResult.failure("Monday API errors")
        return StepResult.success(self.item)

    async def download_file(self, url):
        self.downloaded.append(url)
        if not self.download_ok:
            return StepResult.failure("Download failed with status 404")
        return StepResult.success(b"file-bytes")


class FakeCrm:
    def __init__(self, upload_ok=True, field_ok=True, note_ok=True):
        self.upload_ok = upload_ok
        self.field_ok = field_ok
        self.note_ok = note_ok
        self.uploads = []
        self.field_updates = []
        self.notes = []

    async def upload_file(self, filename, content_type, data):
        self.uploads.append((filename, content_type, data))
        if not self.upload_ok:
            return StepResult.failure("S3 upload failed (403)")
        return StepResult.success(f"https://close.test/files/{filename}")

    async def update_lead_field(self, lead_id, url):
        self.field_updates.append((lead_id, url))
        if not self.field_ok:
            return StepResult.failure("Close lead field update failed (404)")
        return StepResult.success()

    async def create_note(self, lead_id, note_text, attachment):
        self.notes.append((lead_id, note_text, attachment))
        if not self.note_ok:
            return StepResult.failure("Close note creation failed (400)")
        return StepResult.success()


class FakeMirror:
    def __init__(self, ok=True):
        self.ok = ok
        self.published = []

    async def publish(self, item_id, filename, content_type, data):
        self.published.append((item_id, filename, content_type, data))
        if not self.ok:
            return StepResult.failure("R2 upload error: AccessDenied")
        return StepResult.success(f"https://files.example.com/{item_id}/{filename}")


def make_source_item(lead_id="lead_abc", assets=None):
    if assets is None:
        assets = [Asset(id="900", name="audit.pdf", public_url="https://files.monday.test/900")]
    return SourceItem(item_id="123", name="Acme Corp", lead_id=lead_id, assets=assets)


def make_service(sync_config, source=None, crm=None, mirror=None):
    return AuditSyncService(
        config=sync_config,
        source=source or FakeSource(item=make_source_item()),
        crm=crm or FakeCrm(),
        mirror=mirror or FakeMirror(),
        today=lambda: date(2024, 5, 1),
    )


# ---------------------------------------------------------------------------
# Notification handling
# ---------------------------------------------------------------------------

class TestHandleNotification:
    """Tests for what the service does before touching any API."""

    @pytest.mark.asyncio
    async def test_challenge_makes_no_calls(self, sync_config):
        """A challenge is answered without fetching anything."""
        source = FakeSource(item=make_source_item())
        service = make_service(sync_config, source=source)

        outcome = await service.handle_notification({"challenge": "xyz", "pulseId": 1})

        assert outcome.kind == OutcomeKind.CHALLENGE
        assert outcome.challenge == "xyz"
        assert source.fetched == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"event": {"columnId": "status", "pulseId": 123}},
        {"event": {"columnId": "file_col", "value": "{}", "pulseId": 123}},
        {"event": {"columnId": "file_col", "value": '{"files":[]}', "pulseId": 123}},
        {"something": "else"},
    ])
    async def test_ignorable_notifications_answer_200_without_calls(self, sync_config, body):
        """Ignorable notifications never reach Monday, Close or the mirror."""
        source = FakeSource(item=make_source_item())
        crm = FakeCrm()
        mirror = FakeMirror()
        service = make_service(sync_config, source=source, crm=crm, mirror=mirror)

        outcome = await service.handle_notification(body)

        assert outcome.kind == OutcomeKind.IGNORED
        assert outcome.status_code == 200
        assert outcome.message
        assert source.fetched == []
        assert crm.uploads == [] and crm.notes == []
        assert mirror.published == []

    @pytest.mark.asyncio
    async def test_event_for_file_column_syncs_item(self, sync_config):
        """A file column event syncs the item it names."""
        source = FakeSource(item=make_source_item())
        service = make_service(sync_config, source=source)

        outcome = await service.handle_notification(
            {"event": {"columnId": "file_col", "pulseId": 123}}
        )

        assert outcome.kind == OutcomeKind.COMPLETED
        assert source.fetched == ["123"]


# ---------------------------------------------------------------------------
# Item level
# ---------------------------------------------------------------------------

class TestSyncItem:
    """Tests for item-level outcomes."""

    @pytest.mark.asyncio
    async def test_fetch_failure_aborts_with_500(self, sync_config):
        """Without item data nothing else runs."""
        crm = FakeCrm()
        service = make_service(sync_config, source=FakeSource(fetch_ok=False), crm=crm)

        outcome = await service.sync_item("123")

        assert outcome.kind == OutcomeKind.FAILED
        assert outcome.status_code == 500
        assert outcome.message == "Failed to fetch item data"
        assert crm.uploads == []

    @pytest.mark.asyncio
    async def test_missing_lead_id_is_ignored(self, sync_config):
        """Items without a Close lead are acknowledged and skipped."""
        source = FakeSource(item=make_source_item(lead_id=None))
        service = make_service(sync_config, source=source)

        outcome = await service.sync_item("123")

        assert outcome.kind == OutcomeKind.IGNORED
        assert outcome.status_code == 200
        assert outcome.message == "No Close Lead ID on item"
        assert source.downloaded == []

    @pytest.mark.asyncio
    async def test_no_assets_is_ignored(self, sync_config):
        """Items without files are acknowledged and skipped."""
        source = FakeSource(item=make_source_item(assets=[]))
        service = make_service(sync_config, source=source)

        outcome = await service.sync_item("123")

        assert outcome.kind == OutcomeKind.IGNORED
        assert outcome.message == "No file assets found"


# ---------------------------------------------------------------------------
# Asset level
# ---------------------------------------------------------------------------

class TestSyncAsset:
    """Tests for the per-asset step sequence and its failure policy."""

    @pytest.mark.asyncio
    async def test_happy_path(self, sync_config):
        """Every step runs once and succeeds."""
        crm = FakeCrm()
        mirror = FakeMirror()
        service = make_service(sync_config, crm=crm, mirror=mirror)

        outcome = await service.sync_item("123")

        assert outcome.kind == OutcomeKind.COMPLETED
        assert outcome.message == "OK"
        assert crm.uploads == [("audit.pdf", "application/pdf", b"file-bytes")]
        assert mirror.published == [("123", "audit.pdf", "application/pdf", b"file-bytes")]
        assert crm.field_updates == [("lead_abc", "https://files.example.com/123/audit.pdf")]

        (lead_id, note_text, attachment) = crm.notes[0]
        assert lead_id == "lead_abc"
        assert "File: audit.pdf" in note_text
        assert "Lead: Acme Corp" in note_text
        assert "Date: 2024-05-01" in note_text
        assert attachment.url == "https://close.test/files/audit.pdf"
        assert attachment.content_type == "application/pdf"

        (report,) = outcome.reports
        assert all(status == StepStatus.SUCCEEDED for status in report.steps.values())
        assert report.note_created

    @pytest.mark.asyncio
    async def test_download_failure_skips_asset(self, sync_config):
        """A failed download skips the rest of the asset."""
        crm = FakeCrm()
        mirror = FakeMirror()
        source = FakeSource(item=make_source_item(), download_ok=False)
        service = make_service(sync_config, source=source, crm=crm, mirror=mirror)

        outcome = await service.sync_item("123")

        assert outcome.kind == OutcomeKind.COMPLETED
        assert outcome.status_code == 200
        assert crm.uploads == [] and crm.notes == []
        assert mirror.published == []
        assert outcome.reports[0].status_of(SyncStep.DOWNLOAD) == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_crm_upload_failure_skips_asset(self, sync_config):
        """A failed Close upload skips the rest of the asset."""
        crm = FakeCrm(upload_ok=False)
        mirror = FakeMirror()
        service = make_service(sync_config, crm=crm, mirror=mirror)

        outcome = await service.sync_item("123")

        assert outcome.status_code == 200
        assert mirror.published == []
        assert crm.field_updates == [] and crm.notes == []
        assert "403" in outcome.reports[0].errors[SyncStep.CRM_UPLOAD]

    @pytest.mark.asyncio
    async def test_mirror_failure_skips_field_update_but_still_notes(self, sync_config):
        """A failed mirror put skips only the lead field update."""
        crm = FakeCrm()
        service = make_service(sync_config, crm=crm, mirror=FakeMirror(ok=False))

        outcome = await service.sync_item("123")

        assert crm.field_updates == []
        (_, _, attachment) = crm.notes[0]
        assert attachment.url == "https://close.test/files/audit.pdf"

        report = outcome.reports[0]
        assert report.status_of(SyncStep.MIRROR_UPLOAD) == StepStatus.FAILED
        assert report.status_of(SyncStep.FIELD_UPDATE) == StepStatus.SKIPPED
        assert report.mirror_url is None
        assert report.note_created

    @pytest.mark.asyncio
    async def test_field_update_failure_still_notes(self, sync_config):
        """A failed field update does not stop the note."""
        crm = FakeCrm(field_ok=False)
        service = make_service(sync_config, crm=crm)

        outcome = await service.sync_item("123")

        assert len(crm.notes) == 1
        assert outcome.reports[0].status_of(SyncStep.FIELD_UPDATE) == StepStatus.FAILED
        assert outcome.reports[0].note_created

    @pytest.mark.asyncio
    async def test_note_failure_is_reported_not_raised(self, sync_config):
        """A failed note is recorded in the report."""
        service = make_service(sync_config, crm=FakeCrm(note_ok=False))

        outcome = await service.sync_item("123")

        assert outcome.kind == OutcomeKind.COMPLETED
        assert outcome.status_code == 200
        assert not outcome.reports[0].note_created

    @pytest.mark.asyncio
    async def test_unknown_extension_uses_octet_stream(self, sync_config):
        """Files without a known extension are sent as octet-stream."""
        item = make_source_item(assets=[Asset(id="1", name="scan", public_url="https://x/1")])
        crm = FakeCrm()
        service = make_service(sync_config, source=FakeSource(item=item), crm=crm)

        await service.sync_item("123")

        assert crm.uploads[0][1] == "application/octet-stream"
        assert crm.notes[0][2].content_type == "application/octet-stream"


class TestFailurePolicy:
    """The policy table covers every step."""

    def test_every_step_has_a_policy(self):
        """No step is missing from the table."""
        assert set(FAILURE_POLICY) == set(SyncStep)

    def test_only_metadata_fetch_aborts(self):
        """Only the item fetch aborts the whole invocation."""
        aborting = [step for step, policy in FAILURE_POLICY.items()
                    if policy == FailurePolicy.ABORT_INVOCATION]
        assert aborting == [SyncStep.FETCH_ITEM]

    @pytest.mark.asyncio
    async def test_aborting_policy_stops_remaining_steps_and_assets(self, sync_config, monkeypatch):
        """An aborting step ends its asset and every asset after it."""
        monkeypatch.setitem(FAILURE_POLICY, SyncStep.CRM_UPLOAD, FailurePolicy.ABORT_INVOCATION)
        item = make_source_item(assets=[
            Asset(id="1", name="a.pdf", public_url="https://files.monday.test/1"),
            Asset(id="2", name="b.pdf", public_url="https://files.monday.test/2"),
        ])
        source = FakeSource(item=item)
        crm = FakeCrm(upload_ok=False)
        mirror = FakeMirror()
        service = make_service(sync_config, source=source, crm=crm, mirror=mirror)

        outcome = await service.sync_item("123")

        assert source.downloaded == ["https://files.monday.test/1"]
        assert mirror.published == []
        assert crm.notes == []
        assert len(outcome.reports) == 1
