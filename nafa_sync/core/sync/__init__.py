"""
Audit file sync logic.

Contains the notification normalizer, the domain models and the
orchestrating sync service.
"""

from .models import (
    Asset,
    AssetSyncReport,
    NoteAttachment,
    OutcomeKind,
    SourceItem,
    StepResult,
    StepStatus,
    SyncConfig,
    SyncOutcome,
    SyncStep,
)
from .service import AuditSyncService

__all__ = [
    "Asset",
    "AssetSyncReport",
    "AuditSyncService",
    "NoteAttachment",
    "OutcomeKind",
    "SourceItem",
    "StepResult",
    "StepStatus",
    "SyncConfig",
    "SyncOutcome",
    "SyncStep",
]
