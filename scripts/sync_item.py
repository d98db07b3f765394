#!/usr/bin/env python3
"""
Re-run the NAFA audit sync for a single Monday item.

Useful when a webhook was missed or a Close call failed: the webhook never
retries on its own, so this is the way to push a file through again.
Runs the same pipeline the webhook does, minus the notification parsing.

Usage:
    python scripts/sync_item.py 1234567890

Requires:
    - .env file with the same settings the service uses
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

import httpx

from nafa_sync.api.dependencies import build_sync_config, build_sync_service, get_storage_client
from nafa_sync.config.settings import get_settings
from nafa_sync.core.sync.models import OutcomeKind, SyncOutcome


def format_outcome(outcome: SyncOutcome) -> str:
    """Human-readable summary of a sync outcome."""
    lines = [f"Item {outcome.item_id}: {outcome.kind.value} ({outcome.status_code}) {outcome.message}"]

    for report in outcome.reports:
        lines.append(f"  {report.asset_name}")
        for step, step_status in report.steps.items():
            line = f"    {step.value:<14} {step_status.value}"
            if step in report.errors:
                line += f" - {report.errors[step]}"
            lines.append(line)
        if report.crm_file_url:
            lines.append(f"    close file     {report.crm_file_url}")
        if report.mirror_url:
            lines.append(f"    public url     {report.mirror_url}")

    return "\n".join(lines)


async def run(item_id: str) -> SyncOutcome:
    settings = get_settings()

    missing = settings.validate_required_fields()
    if missing:
        print(f"Warning: missing settings: {', '.join(missing)}", file=sys.stderr)

    config = build_sync_config(settings)
    storage = get_storage_client(settings)

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http_client:
        service = build_sync_service(config, http_client, storage)
        return await service.sync_item(item_id)


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync the latest NAFA file of a Monday item to Close")
    parser.add_argument("item_id", help="Monday.com item (pulse) ID")
    args = parser.parse_args()

    outcome = asyncio.run(run(args.item_id))
    print(format_outcome(outcome))

    return 1 if outcome.kind == OutcomeKind.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
