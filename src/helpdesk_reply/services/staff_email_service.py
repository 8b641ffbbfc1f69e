"""
Staff email notifications sent through Amazon SES.

Only the routing (who gets notified for an event) lives here; bodies are
short plain-text summaries linking back to the admin ticket page.
"""

from __future__ import annotations

from typing import List, Optional

import boto3

from helpdesk_reply.config import HelpdeskSettings
from helpdesk_reply.models.notification import NotificationPayload
from helpdesk_reply.models.staff import StaffUser
from helpdesk_reply.repositories.ticket_repo import TicketRepository
from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)

EVENT_SUBJECTS = {
    "new_reply_by_customer": "[Ticket #{trackid}] New reply to: {subject}",
}


class StaffEmailNotifier:
    """Route ticket events to staff inboxes."""

    def __init__(
        self,
        repository: TicketRepository,
        settings: HelpdeskSettings,
        ses_client=None,
    ):
        self.repository = repository
        self.settings = settings
        self.ses = ses_client or boto3.client("ses")

    def notify_assigned_staff(
        self, payload: NotificationPayload, event: str, preference: str = "notify_reply_my"
    ) -> List[str]:
        """Email the ticket owner unless they opted out of ``preference``."""
        owner: Optional[StaffUser] = self.repository.get_staff_user(payload.owner)
        if owner is None or not owner.active or not getattr(owner, preference, False):
            return []
        return self._send(event, payload, [owner])

    def notify_staff(
        self, payload: NotificationPayload, event: str, preference: str = "notify_reply_unassigned"
    ) -> List[str]:
        """Email every subscribed staff member allowed to see the ticket's category."""
        recipients = [
            user
            for user in self.repository.list_staff_with_preference(preference)
            if user.can_view_category(payload.category)
        ]
        return self._send(event, payload, recipients)

    def _ticket_url(self, trackid: str) -> str:
        return f"{self.settings.hesk_url}/admin/admin_ticket.php?track={trackid}"

    def compose(self, event: str, payload: NotificationPayload) -> dict:
        subject = EVENT_SUBJECTS.get(event, "[Ticket #{trackid}] {subject}").format(
            trackid=payload.trackid, subject=payload.subject
        )
        body = (
            f"Hello,\n\n"
            f"{payload.last_reply_by} has replied to ticket #{payload.trackid}.\n\n"
            f"Subject: {payload.subject}\n"
            f"Priority: {payload.priority}\n"
            f"Status: {payload.status}\n\n"
            f"You can manage this ticket here:\n{self._ticket_url(payload.trackid)}\n"
        )
        return {"Subject": {"Data": subject, "Charset": "UTF-8"}, "Body": {"Text": {"Data": body, "Charset": "UTF-8"}}}

    def _send(self, event: str, payload: NotificationPayload, users: List[StaffUser]) -> List[str]:
        addresses = sorted({u.email for u in users if u.email})
        if not addresses:
            logger.info("No staff to notify", extra={"event": event, "trackid": payload.trackid})
            return []

        message = self.compose(event, payload)
        source = f"{self.settings.noreply_name} <{self.settings.noreply_mail}>"
        for address in addresses:
            self.ses.send_email(Source=source, Destination={"ToAddresses": [address]}, Message=message)
        logger.info(
            "Staff notified",
            extra={"event": event, "trackid": payload.trackid, "recipients": len(addresses)},
        )
        return addresses
