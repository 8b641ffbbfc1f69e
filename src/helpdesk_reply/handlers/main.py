"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

The reply handler owns its own method check so that GET /reply_ticket gets
the same redirect a browser would get from the PHP front end.
"""

from typing import Callable, Dict, Tuple
import json

from . import health_check, reply_ticket


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event, context):
    """Entry point invoked by API Gateway HTTP API."""
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path.rstrip('/') or '/'}"

    route_table: Tuple[Tuple[str, Callable], ...] = (
        ("GET /health", health_check.lambda_handler),
        ("POST /reply_ticket", reply_ticket.lambda_handler),
        ("GET /reply_ticket", reply_ticket.lambda_handler),
    )

    for key, handler in route_table:
        if route_key == key:
            return handler(event, context)

    return _response(404, {"message": "Route not found", "route": route_key})
