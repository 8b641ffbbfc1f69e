"""Health check reporting which backing resources this function is wired to."""

import os
import json
from datetime import datetime, timezone

# A reply cannot be accepted without these.
REQUIRED = ("database", "sessions_table")


def configured_resources() -> dict:
    """Presence of each resource setting; values are never echoed back."""
    return {
        "database": bool(os.environ.get("DATABASE_URL") or os.environ.get("DB_SECRET_ARN")),
        "sessions_table": bool(os.environ.get("SESSIONS_TABLE")),
        "attachments_bucket": bool(os.environ.get("ATTACHMENTS_BUCKET")),
        "push": bool(
            os.environ.get("PUSH_SECRET_ARN")
            or os.environ.get("TELEGRAM_TOKEN")
            or os.environ.get("FCM_SERVICE_ACCOUNT_JSON")
        ),
    }


def lambda_handler(event, context):
    """200 when the reply flow can run, 503 when a required resource is missing."""
    resources = configured_resources()
    healthy = all(resources[name] for name in REQUIRED)
    return {
        "statusCode": 200 if healthy else 503,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "status": "ok" if healthy else "degraded",
                "service": "helpdesk-reply",
                "environment": os.environ.get("ENVIRONMENT", "dev"),
                "resources": resources,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
    }
