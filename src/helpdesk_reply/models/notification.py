"""Notification payload built after a reply is committed."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from helpdesk_reply.models.ticket import Ticket

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_date(value: Optional[datetime]) -> str:
    return value.strftime(DATE_FORMAT) if value else ""


class NotificationPayload(BaseModel):
    """Ephemeral ticket view handed to email and push channels."""

    id: int
    trackid: str
    email: str
    category: int
    priority: int
    owner: int
    status: int
    name: str
    subject: str
    message: str
    attachments: str = ""
    dt: str
    lastchange: str
    due_date: str = ""
    time_worked: str = "00:00:00"
    last_reply_by: str
    custom_fields: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_ticket(
        cls,
        ticket: Ticket,
        message_html: str,
        attachment_refs: str,
        custom_field_usage: Dict[str, bool],
    ) -> "NotificationPayload":
        """Custom fields not in use are present with an empty value."""
        custom = {
            key: (ticket.custom_fields.get(key, "") if in_use else "")
            for key, in_use in custom_field_usage.items()
        }
        return cls(
            id=ticket.id,
            trackid=ticket.trackid,
            email=ticket.email,
            category=ticket.category,
            priority=ticket.priority,
            owner=ticket.owner,
            status=ticket.status,
            name=ticket.name,
            subject=ticket.subject,
            message=message_html,
            attachments=attachment_refs,
            dt=format_date(ticket.dt),
            lastchange=format_date(ticket.lastchange),
            due_date=format_date(ticket.due_date),
            time_worked=ticket.time_worked,
            last_reply_by=ticket.name,
            custom_fields=custom,
        )

    def as_flat_dict(self) -> Dict[str, Any]:
        """Ticket fields and custom fields side by side, as templates expect them."""
        data = self.model_dump(exclude={"custom_fields"})
        data.update(self.custom_fields)
        return data
