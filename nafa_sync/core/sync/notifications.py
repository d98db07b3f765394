"""
Monday.com webhook payload normalization.

Monday delivers column-change notifications in several shapes depending on
how the webhook was registered:

- challenge: {"challenge": "..."} sent once when the webhook is created
- event: {"event": {"columnId": ..., "value": ..., "pulseId": ...}}
- payload: {"payload": {"inputFields": {"itemId": ...}}} from integration recipes
- bare: {"itemId": ...} from manual or automation calls

Parsing turns the decoded body into exactly one of these variants, and
normalization decides what the sync should do with it. Both are pure.
"""

import json
from typing import Any, Optional

from .models import (
    BareNotification,
    ChallengeNotification,
    EventNotification,
    NormalizedNotification,
    Notification,
    NotificationKind,
    PayloadNotification,
)

# Values Monday sends when the last file is removed from a file column
REMOVED_FILE_VALUES = ('{}', '{"files":[]}')

IGNORE_OTHER_COLUMN = "Ignoring non-NAFA column change"
IGNORE_REMOVED_FILE = "File was removed, skipping"
NO_ITEM_ID = "No item ID found in payload"


def _as_item_id(value: Any) -> Optional[str]:
    """Item ids arrive as ints or strings; empty values mean absent."""
    if value is None or value == "" or value is False:
        return None
    return str(value)


def _first_id(fields: dict, *names: str) -> Optional[str]:
    for name in names:
        item_id = _as_item_id(fields.get(name))
        if item_id:
            return item_id
    return None


def parse_notification(body: Any) -> Notification:
    """
    Classify a decoded request body.

    Order matters: a challenge wins over everything, then event,
    then payload, then the bare top-level fields.
    """
    if not isinstance(body, dict):
        return BareNotification(item_id=None)

    if body.get("challenge"):
        return ChallengeNotification(challenge=body["challenge"])

    event = body.get("event")
    if isinstance(event, dict) or event:
        if not isinstance(event, dict):
            return EventNotification(column_id=None, value=None, item_id=None)
        return EventNotification(
            column_id=event.get("columnId") or None,
            value=event.get("value"),
            item_id=_first_id(event, "pulseId", "itemId"),
        )

    payload = body.get("payload")
    if isinstance(payload, dict) or payload:
        if not isinstance(payload, dict):
            return PayloadNotification(item_id=None)
        fields = payload.get("inputFields")
        if fields is None:
            fields = payload.get("inboundFieldValues")
        if not isinstance(fields, dict):
            fields = {}
        item_id = _first_id(fields, "itemId", "pulseId") or _as_item_id(payload.get("itemId"))
        return PayloadNotification(item_id=item_id)

    return BareNotification(item_id=_first_id(body, "itemId", "pulseId"))


def is_removed_file_value(value: Any) -> bool:
    """
    True if an event value describes an emptied file column.

    Monday sends the value as a JSON string in some webhook versions
    and as an object in others; both forms are recognized.
    """
    if isinstance(value, str):
        if value in REMOVED_FILE_VALUES:
            return True
        try:
            value = json.loads(value)
        except ValueError:
            return False
    if isinstance(value, dict):
        return value == {} or value == {"files": []}
    return False


def normalize_notification(
    notification: Notification,
    target_column_id: str,
) -> NormalizedNotification:
    """Decide whether a notification should trigger a sync, and for which item."""
    if isinstance(notification, ChallengeNotification):
        return NormalizedNotification(
            kind=NotificationKind.CHALLENGE,
            challenge=notification.challenge,
        )

    if isinstance(notification, EventNotification):
        if notification.column_id and notification.column_id != target_column_id:
            return NormalizedNotification(
                kind=NotificationKind.IGNORED,
                reason=IGNORE_OTHER_COLUMN,
            )
        if notification.value is not None and is_removed_file_value(notification.value):
            return NormalizedNotification(
                kind=NotificationKind.IGNORED,
                reason=IGNORE_REMOVED_FILE,
            )

    if not notification.item_id:
        return NormalizedNotification(kind=NotificationKind.NO_ITEM_ID, reason=NO_ITEM_ID)

    return NormalizedNotification(kind=NotificationKind.ITEM, item_id=notification.item_id)
