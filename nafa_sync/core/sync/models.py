"""
Domain models for the audit file sync.

These models represent the core business concepts. They have no dependencies
on external frameworks, HTTP clients, or storage SDKs. Every entity here is
derived fresh per notification; nothing is cached between invocations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SyncConfig:
    """
    Everything the sync components need to know about the outside world.

    Built once per process from Settings and handed to each component,
    so no component reaches for environment variables on its own.
    """
    monday_api_token: str
    close_api_key: str
    file_column_id: str
    lead_id_column_id: str
    lead_url_field_id: str
    mirror_public_url: str
    monday_api_url: str = "https://api.monday.com/v2"
    close_api_url: str = "https://api.close.com/api/v1"

    def __post_init__(self) -> None:
        if not self.monday_api_url:
            raise ValueError("monday_api_url is required")
        if not self.close_api_url:
            raise ValueError("close_api_url is required")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChallengeNotification:
    """Handshake sent by Monday when a webhook is registered."""
    challenge: Any


@dataclass(frozen=True)
class EventNotification:
    """Standard webhook event for a column change."""
    column_id: Optional[str]
    value: Any
    item_id: Optional[str]


@dataclass(frozen=True)
class PayloadNotification:
    """Integration recipe payload (inputFields / inboundFieldValues)."""
    item_id: Optional[str]


@dataclass(frozen=True)
class BareNotification:
    """Anything else: item id, if any, sits at the top level."""
    item_id: Optional[str]


Notification = Union[
    ChallengeNotification,
    EventNotification,
    PayloadNotification,
    BareNotification,
]


class NotificationKind(Enum):
    """What the webhook should do with a normalized notification."""
    CHALLENGE = "challenge"
    IGNORED = "ignored"
    ITEM = "item"
    NO_ITEM_ID = "no_item_id"


@dataclass(frozen=True)
class NormalizedNotification:
    """Result of matching a notification against the sync rules."""
    kind: NotificationKind
    item_id: Optional[str] = None
    challenge: Any = None
    reason: str = ""


# ---------------------------------------------------------------------------
# Source items
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Asset:
    """A file attached to a Monday item."""
    id: str
    name: str
    public_url: Optional[str]
    created_at: Optional[datetime] = None
    file_extension: Optional[str] = None
    file_size: Optional[int] = None


@dataclass
class SourceItem:
    """
    A Monday item as the sync sees it.

    `assets` holds at most one entry: the most recently created file
    in the NAFA column.
    """
    item_id: str
    name: str
    lead_id: Optional[str] = None
    assets: list[Asset] = field(default_factory=list)


@dataclass(frozen=True)
class NoteAttachment:
    """File reference carried by a Close note."""
    url: str
    filename: str
    content_type: str


# ---------------------------------------------------------------------------
# Step results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepResult(Generic[T]):
    """
    Outcome of a single sync step.

    Steps report failure through this value instead of raising, so the
    orchestrator can decide per step whether to abort, skip, or carry on.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StepResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "StepResult[T]":
        return cls(ok=False, error=error)


class SyncStep(Enum):
    FETCH_ITEM = "fetch_item"
    DOWNLOAD = "download"
    CRM_UPLOAD = "crm_upload"
    MIRROR_UPLOAD = "mirror_upload"
    FIELD_UPDATE = "field_update"
    NOTE_CREATE = "note_create"


class FailurePolicy(Enum):
    """What the orchestrator does when a step fails."""
    ABORT_INVOCATION = "abort_invocation"
    SKIP_ASSET = "skip_asset"
    SKIP_SUBSTEP = "skip_substep"
    CONTINUE = "continue"


class StepStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class AssetSyncReport:
    """Per-asset record of what happened at each step."""
    asset_name: str
    steps: dict[SyncStep, StepStatus] = field(default_factory=dict)
    errors: dict[SyncStep, str] = field(default_factory=dict)
    crm_file_url: Optional[str] = None
    mirror_url: Optional[str] = None

    def record(self, step: SyncStep, result: StepResult) -> None:
        if result.ok:
            self.steps[step] = StepStatus.SUCCEEDED
        else:
            self.steps[step] = StepStatus.FAILED
            self.errors[step] = result.error or "unknown error"

    def skip(self, step: SyncStep) -> None:
        self.steps[step] = StepStatus.SKIPPED

    def status_of(self, step: SyncStep) -> Optional[StepStatus]:
        return self.steps.get(step)

    @property
    def note_created(self) -> bool:
        return self.steps.get(SyncStep.NOTE_CREATE) == StepStatus.SUCCEEDED


class OutcomeKind(Enum):
    CHALLENGE = "challenge"
    IGNORED = "ignored"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SyncOutcome:
    """
    Terminal result of one notification.

    Carries the HTTP status the webhook should answer with. Ignorable
    conditions are 200 on purpose: Monday retries anything else.
    """
    kind: OutcomeKind
    status_code: int
    message: str
    challenge: Any = None
    item_id: Optional[str] = None
    reports: list[AssetSyncReport] = field(default_factory=list)

    @classmethod
    def for_challenge(cls, challenge: Any) -> "SyncOutcome":
        return cls(kind=OutcomeKind.CHALLENGE, status_code=200, message="", challenge=challenge)

    @classmethod
    def ignored(cls, message: str, item_id: Optional[str] = None) -> "SyncOutcome":
        return cls(kind=OutcomeKind.IGNORED, status_code=200, message=message, item_id=item_id)

    @classmethod
    def failed(cls, message: str, item_id: Optional[str] = None) -> "SyncOutcome":
        return cls(kind=OutcomeKind.FAILED, status_code=500, message=message, item_id=item_id)
