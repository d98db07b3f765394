"""
Shared fixtures for the sync tests.

FakeApis stands in for every HTTP service the sync talks to (Monday's
GraphQL API and file CDN, Close, and the presigned S3 form) behind a
single httpx.MockTransport handler. Tests tweak its attributes to make
individual calls fail and inspect `requests` to see what was sent.
"""

import json
from typing import Optional

import httpx
import pytest

from nafa_sync.core.sync.models import SyncConfig

MONDAY_API_URL = "https://monday.test/v2"
CLOSE_API_URL = "https://close.test/api/v1"
S3_UPLOAD_URL = "https://s3.test/close-uploads"
CLOSE_DOWNLOAD_URL = "https://close.test/files/download/abc123"
MIRROR_BASE_URL = "https://files.example.com"


def monday_asset(asset_id: str, name: str, created_at: Optional[str]) -> dict:
    """An asset as Monday's GraphQL API returns it."""
    return {
        "id": asset_id,
        "name": name,
        "public_url": f"https://files.monday.test/{asset_id}/{name}",
        "file_extension": "." + name.rsplit(".", 1)[-1] if "." in name else "",
        "file_size": 1024,
        "created_at": created_at,
    }


def monday_item(
    item_id: str = "123",
    name: str = "Acme Corp",
    lead_id: Optional[str] = "lead_abc",
    assets: Optional[list[dict]] = None,
) -> dict:
    """An item as Monday's GraphQL API returns it."""
    if assets is None:
        assets = [monday_asset("900", "audit.pdf", "2024-05-01T10:00:00Z")]
    return {
        "id": item_id,
        "name": name,
        "column_values": [{"id": "lead_col", "text": lead_id}],
        "assets": assets,
    }


class FakeApis:
    """Routes outbound requests to canned Monday/Close/S3 responses."""

    def __init__(self) -> None:
        self.item: Optional[dict] = monday_item()
        self.monday_errors: Optional[list] = None
        self.monday_status = 200
        self.file_status = 200
        self.file_bytes = b"%PDF-1.4 audit"
        self.init_status = 200
        self.init_body: dict = {
            "upload": {
                "url": S3_UPLOAD_URL,
                "fields": {"key": "uploads/abc123", "policy": "c2lnbmVk"},
            },
            "download": {"url": CLOSE_DOWNLOAD_URL},
        }
        self.s3_status = 204
        self.lead_status = 200
        self.note_status = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == MONDAY_API_URL:
            if self.monday_errors:
                return httpx.Response(200, json={"errors": self.monday_errors})
            items = [self.item] if self.item else []
            return httpx.Response(self.monday_status, json={"data": {"items": items}})

        if url.startswith("https://files.monday.test/"):
            return httpx.Response(self.file_status, content=self.file_bytes)

        if url == f"{CLOSE_API_URL}/files/upload/":
            return httpx.Response(self.init_status, json=self.init_body)

        if url == S3_UPLOAD_URL:
            return httpx.Response(self.s3_status)

        if url.startswith(f"{CLOSE_API_URL}/lead/"):
            return httpx.Response(self.lead_status, json={})

        if url == f"{CLOSE_API_URL}/activity/note/":
            return httpx.Response(self.note_status, json={"id": "acti_1"})

        return httpx.Response(404, text=f"unexpected request to {url}")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, method: str, url_prefix: str) -> list[httpx.Request]:
        return [
            request for request in self.requests
            if request.method == method and str(request.url).startswith(url_prefix)
        ]

    def json_of(self, request: httpx.Request) -> dict:
        return json.loads(request.content)


@pytest.fixture
def fake_apis() -> FakeApis:
    return FakeApis()


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(
        monday_api_token="monday-token",
        close_api_key="close-key",
        file_column_id="file_col",
        lead_id_column_id="lead_col",
        lead_url_field_id="cf_nafa",
        mirror_public_url=MIRROR_BASE_URL,
        monday_api_url=MONDAY_API_URL,
        close_api_url=CLOSE_API_URL,
    )


@pytest.fixture
def make_asset():
    return monday_asset


@pytest.fixture
def make_item():
    return monday_item
