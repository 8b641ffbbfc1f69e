"""
Reply Workflow.

Accepts a customer reply to an existing ticket: throttling, aggregated
validation, ticket checks, abuse detection, then attachments + ticket
update + reply insert in one transaction. Notifications go out only after
that transaction has committed.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from helpdesk_reply.config import HelpdeskSettings
from helpdesk_reply.models.attachment import (
    AttachmentRecord,
    MigratedAttachment,
    StoredAttachment,
    TemporaryAttachment,
    encode_attachment_refs,
)
from helpdesk_reply.models.notification import NotificationPayload
from helpdesk_reply.models.reply import ReplyOutcome, ReplyRecord, ReplyRequest, ValidationIssue
from helpdesk_reply.models.session import (
    CUSTOMER_EMAIL,
    FORCE_FORM_TOP,
    STAGED_ATTACHMENTS,
    TICKET_MESSAGE,
    TRACKING_ID,
    ReplySession,
)
from helpdesk_reply.models.ticket import Ticket, TicketReplyUpdate
from helpdesk_reply.repositories.ticket_repo import TicketRepository
from helpdesk_reply.services.attachment_service import AttachmentService
from helpdesk_reply.services.flood_guard import FloodGuard
from helpdesk_reply.services.notification_service import NotificationFanout
from helpdesk_reply.services.status_policy import TicketStatusPolicy
from helpdesk_reply.utils.clock import utcnow
from helpdesk_reply.utils.error_handling import (
    EmailMismatchError,
    MalformedTrackingIdError,
    ReplyValidationError,
    TicketLockedError,
    TicketNotFoundError,
)
from helpdesk_reply.utils.logging_config import get_logger
from helpdesk_reply.utils.messages import msg
from helpdesk_reply.utils.text_format import render_message_html
from helpdesk_reply.utils.validators import (
    clean_email,
    clean_input,
    clean_tracking_id,
    email_matches,
)

logger = get_logger(__name__)


class ReplyService:
    """Orchestrates one customer reply submission."""

    def __init__(
        self,
        settings: HelpdeskSettings,
        repository: TicketRepository,
        flood_guard: FloodGuard,
        status_policy: TicketStatusPolicy,
        fanout: NotificationFanout,
        attachments: Optional[AttachmentService] = None,
        clock: Callable = utcnow,
    ):
        self.settings = settings
        self.repository = repository
        self.flood_guard = flood_guard
        self.status_policy = status_policy
        self.fanout = fanout
        self.attachments = attachments
        self.clock = clock

    @property
    def attachments_enabled(self) -> bool:
        return self.settings.attachments.use and self.attachments is not None

    def submit(self, request: ReplyRequest, session: ReplySession) -> ReplyOutcome:
        """Run the whole workflow; raises an AppError subclass on rejection."""
        self.flood_guard.check_and_record_reply_flood(session)

        trackid = clean_tracking_id(request.orig_track)
        if not trackid:
            raise MalformedTrackingIdError()

        email = clean_email(request.email) or session.get(CUSTOMER_EMAIL)
        session.set(TRACKING_ID, trackid)
        session.set(CUSTOMER_EMAIL, email)

        issues: List[ValidationIssue] = []

        message = clean_input(request.message)
        if message:
            message_html = render_message_html(message)
        else:
            message_html = ""
            issues.append(ValidationIssue(code="enter_message", message=msg("enter_message"), field="message"))

        legacy_records: List[AttachmentRecord] = []
        temp_attachments: List[TemporaryAttachment] = []
        use_legacy = self.attachments_enabled and request.use_legacy_attachments
        if self.attachments_enabled:
            if use_legacy:
                legacy_records, upload_issues = self.attachments.upload_legacy(request.legacy_uploads, trackid)
                issues.extend(upload_issues)
            else:
                temp_attachments = self.attachments.resolve_temporary(request.attachments)

        if issues:
            self._stash_for_resubmission(request, session, legacy_records, temp_attachments)
            logger.info(
                "Reply rejected by validation",
                extra={"trackid": trackid, "errors": [i.code for i in issues]},
            )
            raise ReplyValidationError(issues)

        try:
            ticket = self._load_reply_target(trackid, email, request.client_ip, session)
            self.flood_guard.check_sequential_abuse(ticket.id, request.client_ip)
            outcome, updated = self._persist(ticket, message, message_html, legacy_records, temp_attachments)
        except Exception:
            if legacy_records:
                self.attachments.remove_attachments(legacy_records)
            raise

        payload = NotificationPayload.from_ticket(
            updated, message_html, outcome.attachment_refs, self.settings.custom_fields
        )
        self.fanout.dispatch(payload, message)

        session.discard(TICKET_MESSAGE)
        session.discard(STAGED_ATTACHMENTS)

        logger.info(
            "Customer reply submitted",
            extra={"trackid": trackid, "reply_id": outcome.reply_id, "attachments": len(outcome.attachments)},
        )
        return outcome

    def _stash_for_resubmission(
        self,
        request: ReplyRequest,
        session: ReplySession,
        legacy_records: List[AttachmentRecord],
        temp_attachments: List[TemporaryAttachment],
    ) -> None:
        """Keep what the customer typed so the form can be refilled."""
        session.set(TICKET_MESSAGE, request.message or "")
        if request.reopen:
            session.set(FORCE_FORM_TOP, True)
        if not self.attachments_enabled:
            return
        if request.use_legacy_attachments:
            self.attachments.remove_attachments(legacy_records)
        else:
            session.set(STAGED_ATTACHMENTS, [t.model_dump(mode="json") for t in temp_attachments])

    def _load_reply_target(
        self, trackid: str, email: Optional[str], client_ip: str, session: ReplySession
    ) -> Ticket:
        self.flood_guard.check_ip_ban(client_ip, session)

        ticket = self.repository.find_ticket_by_tracking_id(trackid)
        if ticket is None:
            raise TicketNotFoundError()

        if self.settings.email_view_ticket and not email_matches(email, ticket.email):
            session.clear()
            logger.info("Reply email mismatch", extra={"trackid": trackid})
            raise EmailMismatchError()

        if ticket.locked:
            raise TicketLockedError()
        return ticket

    def _persist(
        self,
        ticket: Ticket,
        message: str,
        message_html: str,
        legacy_records: List[AttachmentRecord],
        temp_attachments: List[TemporaryAttachment],
    ):
        """Attachments, ticket update and reply insert commit or fail together."""
        now = self.clock()
        new_status = self.status_policy.status_after_customer_reply(ticket.status)
        stored: List[StoredAttachment] = []
        migrated: List[MigratedAttachment] = []

        try:
            with self.repository.transaction() as conn:
                records = legacy_records
                if temp_attachments:
                    migrated = self.attachments.migrate_temporary_attachments(
                        temp_attachments, ticket.trackid, conn=conn
                    )
                    records = migrated
                for record in records:
                    stored.append(self.repository.insert_attachment(ticket.trackid, record, conn=conn))
                refs = encode_attachment_refs(stored)

                self.repository.update_ticket_on_reply(
                    TicketReplyUpdate(ticket_id=ticket.id, status=new_status, lastchange=now), conn=conn
                )
                reply_id = self.repository.insert_reply(
                    ReplyRecord(
                        replyto=ticket.id,
                        name=ticket.name,
                        message=message,
                        message_html=message_html,
                        dt=now,
                        attachments=refs,
                    ),
                    conn=conn,
                )
                updated = self.repository.get_ticket(ticket.id, conn=conn)
        except Exception:
            # Temporary rows were restored by the rollback; their files must stay too.
            if migrated:
                self.attachments.remove_attachments(migrated)
            raise

        if migrated:
            self.attachments.release_temporary_files(migrated)

        outcome = ReplyOutcome(
            reply_id=reply_id,
            ticket_id=ticket.id,
            trackid=ticket.trackid,
            status=new_status,
            attachments=stored,
            attachment_refs=refs,
            message=msg("reply_submitted_success"),
        )
        return outcome, updated
