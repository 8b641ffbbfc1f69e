"""Pydantic models for the reply workflow."""

from helpdesk_reply.models.attachment import (  # noqa: F401
    AttachmentRecord,
    LegacyUpload,
    MigratedAttachment,
    StoredAttachment,
    TemporaryAttachment,
)
from helpdesk_reply.models.notification import NotificationPayload  # noqa: F401
from helpdesk_reply.models.reply import (  # noqa: F401
    ReplyActivity,
    ReplyOutcome,
    ReplyRecord,
    ReplyRequest,
    ValidationIssue,
)
from helpdesk_reply.models.staff import LoginAttempt, StaffUser  # noqa: F401
from helpdesk_reply.models.ticket import LastReplier, Ticket, TicketStatus  # noqa: F401
