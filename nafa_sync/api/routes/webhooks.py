"""
Monday.com webhook endpoint.

Monday calls this whenever a column changes on the Credit Audits board.
Every notification that can't or shouldn't be synced still gets a 200:
Monday retries non-2xx responses, and retrying an ignorable notification
only produces more of them. Only a failed item lookup or an unexpected
error answers 500.
"""

import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ...core.sync.models import OutcomeKind, SyncOutcome
from ..dependencies import SyncServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()

# How much of the incoming payload goes into the log line
PAYLOAD_LOG_LIMIT = 500


def outcome_to_response(outcome: SyncOutcome) -> Response:
    """Render a sync outcome the way Monday expects to see it."""
    if outcome.kind == OutcomeKind.CHALLENGE:
        return JSONResponse({"challenge": outcome.challenge})
    return PlainTextResponse(outcome.message, status_code=outcome.status_code)


@router.post(
    "/monday",
    summary="Monday.com file column webhook",
    description=(
        "Receives Monday.com notifications and syncs the latest NAFA audit "
        "file to the linked Close lead."
    ),
    responses={
        200: {"description": "Challenge echo, ignored notification, or completed sync"},
        500: {"description": "Item lookup failed or unexpected error"},
    },
)
async def monday_webhook(request: Request, service: SyncServiceDep) -> Response:
    """
    Handle one Monday.com notification.

    The body is decoded by hand rather than through a Pydantic model:
    Monday sends several unrelated shapes to the same URL and the
    normalizer decides which one this is.
    """
    try:
        body = json.loads(await request.body())
        logger.info(
            "Incoming payload",
            extra={"payload": json.dumps(body)[:PAYLOAD_LOG_LIMIT]},
        )

        outcome = await service.handle_notification(body)

    except Exception as e:
        logger.error(
            "Webhook processing failed",
            extra={"error": str(e)},
            exc_info=e,
        )
        return PlainTextResponse(
            "Internal error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if outcome.kind == OutcomeKind.COMPLETED:
        logger.info(
            "Notification processed",
            extra={
                "item_id": outcome.item_id,
                "notes_created": sum(1 for report in outcome.reports if report.note_created),
            },
        )

    return outcome_to_response(outcome)
