"""Non-Celery background tasks for notifications and outbound communications."""

import logging
import os
from datetime import datetime, timezone

import httpx

from issue_ledger.schemas import Issue

logger = logging.getLogger(__name__)


def notify_issue_submitted(issue: Issue) -> None:
    """Send a Slack notification when a new issue is submitted.

    This is a FastAPI BackgroundTask (not Celery), suitable for quick,
    synchronous operations that should not block the main request.
    Only public metadata is sent; the encoded payload never leaves the
    ledger.

    Args:
        issue: The freshly submitted issue
    """
    slack_webhook_url = os.environ.get("SLACK_WEBHOOK_URL")
    if not slack_webhook_url:
        logger.warning("SLACK_WEBHOOK_URL not set, skipping notification")
        return

    logger.info("Issue submitted", extra={"issue_id": issue.id})

    reported_at = datetime.fromtimestamp(issue.timestamp, tz=timezone.utc)
    payload = {
        "blocks": [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": "🆕 New Issue Reported",
                },
            },
            {
                "type": "section",
                "fields": [
                    {
                        "type": "mrkdwn",
                        "text": f"*Category:*\n{issue.category}",
                    },
                    {
                        "type": "mrkdwn",
                        "text": f"*Reported:*\n{reported_at:%Y-%m-%d %H:%M} UTC",
                    },
                ],
            },
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f"Issue `{issue.id}` is pending review. Details are encrypted.",
                    },
                ],
            },
        ]
    }

    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.post(slack_webhook_url, json=payload)
            response.raise_for_status()

        logger.info(
            "Slack notification sent successfully",
            extra={"issue_id": issue.id},
        )

    except httpx.HTTPError:
        logger.exception(
            "Failed to send Slack notification",
            extra={"issue_id": issue.id},
        )
