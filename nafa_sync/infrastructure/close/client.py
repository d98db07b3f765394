"""
Close CRM API client.

Covers the three Close operations the sync needs:
1. File upload, which is two-step: Close hands out a presigned S3 form,
   then the file is posted to S3 directly
2. Setting the NAFA report URL custom field on a lead
3. Creating a note on a lead with the uploaded file attached

Close uses Basic auth with the API key as username and an empty password.
The presigned S3 form must not carry those credentials.
"""

import logging
from typing import Any

import httpx

from ...core.sync.models import NoteAttachment, StepResult, SyncConfig

logger = logging.getLogger(__name__)

# S3 answers a presigned POST with one of these, depending on the policy
UPLOAD_SUCCESS_STATUSES = (201, 204)


class CloseClient:
    """
    Implementation of CrmClient over the Close REST API.

    Every method reports failure through StepResult. Transport errors
    are caught here so one flaky call doesn't abort the whole sync.
    """

    def __init__(self, http: httpx.AsyncClient, config: SyncConfig) -> None:
        self._http = http
        self._config = config
        self._auth = httpx.BasicAuth(config.close_api_key, "")
        self._base_url = config.close_api_url.rstrip("/")

    async def upload_file(
        self,
        filename: str,
        content_type: str,
        data: bytes,
    ) -> StepResult[str]:
        """
        Upload a file to Close and return its download URL.

        Step 1 asks Close for an upload target; step 2 posts the file to it
        as a multipart form. Form field order matters to S3: the opaque
        policy fields go first and the file part last.
        """
        try:
            init_response = await self._http.post(
                f"{self._base_url}/files/upload/",
                json={"filename": filename, "content_type": content_type},
                auth=self._auth,
            )
        except httpx.HTTPError as e:
            logger.error("Close file init error", extra={"error": str(e)})
            return StepResult.failure(f"Close file init error: {e}")

        if not init_response.is_success:
            logger.error(
                "Close file init failed",
                extra={"status": init_response.status_code, "body": init_response.text[:500]},
            )
            return StepResult.failure(f"Close file init failed ({init_response.status_code})")

        upload_url, upload_fields, download_url = self._parse_upload_target(init_response)
        if not upload_url or upload_fields is None or not download_url:
            logger.error("Close file init response missing required fields")
            return StepResult.failure("Close file init response missing required fields")

        try:
            s3_response = await self._http.post(
                upload_url,
                data={key: str(value) for key, value in upload_fields.items()},
                files={"file": (filename, data, content_type)},
            )
        except httpx.HTTPError as e:
            logger.error("S3 upload error", extra={"error": str(e)})
            return StepResult.failure(f"S3 upload error: {e}")

        if s3_response.status_code not in UPLOAD_SUCCESS_STATUSES:
            logger.error(
                "S3 upload failed",
                extra={"status": s3_response.status_code, "body": s3_response.text[:500]},
            )
            return StepResult.failure(f"S3 upload failed ({s3_response.status_code})")

        logger.info("File uploaded to Close", extra={"download_url": download_url})
        return StepResult.success(download_url)

    async def update_lead_field(self, lead_id: str, url: str) -> StepResult[None]:
        """Set the NAFA report URL custom field on a Close lead."""
        field_key = f"custom.{self._config.lead_url_field_id}"

        try:
            response = await self._http.put(
                f"{self._base_url}/lead/{lead_id}/",
                json={field_key: url},
                auth=self._auth,
            )
        except httpx.HTTPError as e:
            logger.error("Close lead update error", extra={"lead_id": lead_id, "error": str(e)})
            return StepResult.failure(f"Close lead update error: {e}")

        if not response.is_success:
            logger.error(
                "Close lead field update failed",
                extra={"lead_id": lead_id, "status": response.status_code, "body": response.text[:500]},
            )
            return StepResult.failure(f"Close lead field update failed ({response.status_code})")

        logger.info("Updated NAFA Report URL on Close lead", extra={"lead_id": lead_id})
        return StepResult.success()

    async def create_note(
        self,
        lead_id: str,
        note_text: str,
        attachment: NoteAttachment,
    ) -> StepResult[None]:
        """Create a note on a Close lead with the uploaded file attached."""
        body = {
            "lead_id": lead_id,
            "note": note_text,
            "attachments": [
                {
                    "url": attachment.url,
                    "filename": attachment.filename,
                    "content_type": attachment.content_type,
                }
            ],
        }

        try:
            response = await self._http.post(
                f"{self._base_url}/activity/note/",
                json=body,
                auth=self._auth,
            )
        except httpx.HTTPError as e:
            logger.error("Close note creation error", extra={"lead_id": lead_id, "error": str(e)})
            return StepResult.failure(f"Close note creation error: {e}")

        if not response.is_success:
            logger.error(
                "Close note creation failed",
                extra={"lead_id": lead_id, "status": response.status_code, "body": response.text[:500]},
            )
            return StepResult.failure(f"Close note creation failed ({response.status_code})")

        return StepResult.success()

    def _parse_upload_target(self, response: httpx.Response) -> tuple[Any, Any, Any]:
        """Pull (upload url, upload fields, download url) out of the init response."""
        try:
            data = response.json()
        except ValueError:
            return None, None, None
        if not isinstance(data, dict):
            return None, None, None

        upload = data.get("upload") or {}
        download = data.get("download") or {}
        fields = upload.get("fields")
        if not isinstance(fields, dict):
            fields = None
        return upload.get("url"), fields, download.get("url")
