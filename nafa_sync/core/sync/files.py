"""
Helpers for naming and describing synced files.

Content types, mirror store keys and the Close note body are all derived
from the asset name, so they live together here.
"""

from datetime import date, datetime, timezone
from typing import Optional
from urllib.parse import quote

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "txt": "text/plain",
    "html": "text/html",
    "zip": "application/zip",
}

NOTE_SOURCE_LABEL = "Monday.com - Credit Audits Board"

NOTE_TEMPLATE = """\U0001F4CB **NAFA Audit File Uploaded**

File: {filename}
Source: {source}
Lead: {item_name}
Date: {date}

This file was automatically synced from Monday.com."""

# Characters encodeURIComponent leaves alone, beyond the unreserved set
_URI_COMPONENT_SAFE = "!'()*"


def content_type_for(filename: str) -> str:
    """Map a filename's extension to a MIME type (case-insensitive)."""
    if not filename or "." not in filename:
        return DEFAULT_CONTENT_TYPE
    ext = filename.rsplit(".", 1)[-1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def mirror_key(item_id: str, filename: str) -> str:
    """Storage key for the public copy. Not URL-encoded."""
    return f"{item_id}/{filename}"


def mirror_public_url(base_url: str, item_id: str, filename: str) -> str:
    """Public URL for a mirrored file; only the filename segment is encoded."""
    encoded = quote(filename, safe=_URI_COMPONENT_SAFE)
    return f"{base_url.rstrip('/')}/{item_id}/{encoded}"


def build_note_text(
    filename: str,
    item_name: str,
    today: Optional[date] = None,
) -> str:
    """Body of the note posted to the Close lead."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    return NOTE_TEMPLATE.format(
        filename=filename,
        source=NOTE_SOURCE_LABEL,
        item_name=item_name,
        date=today.isoformat(),
    )
