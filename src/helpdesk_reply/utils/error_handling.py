"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict, List, Optional

from helpdesk_reply.models.reply import ValidationIssue
from helpdesk_reply.utils.messages import msg


class AppError(Exception):
    """Base class for application errors."""

    code = "error"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code

    def to_body(self) -> Dict[str, Any]:
        return {"message": str(self), "code": self.code, "status": "error"}


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class MalformedTrackingIdError(AppError):
    """orig_track is missing or has no usable characters."""

    code = "malformed_tracking_id"

    def __init__(self):
        super().__init__(msg("no_trackid"), status_code=400)


class PayloadTooLargeError(AppError):
    """Request body could not be parsed although content was sent."""

    code = "payload_too_large"

    def __init__(self):
        super().__init__(msg("maxpost"), status_code=413)


class MalformedRequestError(AppError):
    """Request body is not a readable reply form."""

    code = "malformed_request"

    def __init__(self):
        super().__init__(msg("bad_request"), status_code=400)


class TicketNotFoundError(NotFoundError):
    """Zero or several tickets share the tracking id."""

    code = "ticket_not_found"

    def __init__(self):
        super().__init__(msg("ticket_not_found"))


class EmailMismatchError(AppError):
    """Customer email does not match the ticket."""

    code = "email_mismatch"

    def __init__(self):
        super().__init__(msg("enmdb"), status_code=403)


class TicketLockedError(AppError):
    """Locked tickets accept no replies."""

    code = "ticket_locked"

    def __init__(self):
        super().__init__(msg("tislock2"), status_code=423)


class IpBannedError(AppError):
    """Client IP is inside an active lockout window."""

    code = "ip_banned"

    def __init__(self, ban_minutes: int):
        super().__init__(msg("yhbb", minutes=ban_minutes), status_code=403)


class FloodError(AppError):
    """Second reply from the same session inside the flood interval."""

    code = "flood"

    def __init__(self):
        super().__init__(msg("e_flood"), status_code=429)


class SequentialAbuseError(AppError):
    """Too many consecutive customer replies; the IP has just been banned."""

    code = "sequential_replies"

    def __init__(self, ban_minutes: int):
        super().__init__(msg("yhbr", minutes=ban_minutes), status_code=429)


class ReplyValidationError(AppError):
    """Aggregated field-level problems, reported together."""

    code = "validation_failed"

    def __init__(self, issues: List[ValidationIssue]):
        super().__init__(msg("pcer"), status_code=422)
        self.issues = issues

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["errors"] = [issue.model_dump() for issue in self.issues]
        return body


def to_response(error: AppError, correlation_id: Optional[str] = None) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    body = error.to_body()
    if correlation_id:
        body["correlation_id"] = correlation_id
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }
