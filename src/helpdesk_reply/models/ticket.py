"""Ticket models."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class TicketStatus(IntEnum):
    """Built-in statuses; custom statuses use ids from 6 upwards."""

    NEW = 0
    WAITING_REPLY = 1
    REPLIED = 2
    RESOLVED = 3
    IN_PROGRESS = 4
    ON_HOLD = 5


class LastReplier(IntEnum):
    CUSTOMER = 0
    STAFF = 1


class Ticket(BaseModel):
    """A ticket row as read from the store."""

    id: int
    trackid: str
    name: str
    email: str = ""
    category: int = 1
    priority: int = 3
    owner: int = 0
    subject: str = ""
    status: int = TicketStatus.NEW
    dt: datetime
    lastchange: datetime
    replies: int = 0
    lastreplier: int = LastReplier.CUSTOMER
    due_date: Optional[datetime] = None
    time_worked: str = "00:00:00"
    locked: bool = False
    custom_fields: Dict[str, str] = Field(default_factory=dict)


class TicketReplyUpdate(BaseModel):
    """Columns touched on the ticket row when a customer replies."""

    ticket_id: int
    status: int
    lastchange: datetime
