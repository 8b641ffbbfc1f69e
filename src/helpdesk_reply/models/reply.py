"""Reply models for the customer reply workflow."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from helpdesk_reply.models.attachment import LegacyUpload, StoredAttachment


class ValidationIssue(BaseModel):
    """One field-level problem shown back to the customer."""

    code: str
    message: str
    field: Optional[str] = None


class ReplyRequest(BaseModel):
    """Form input of POST /reply_ticket, uncleaned."""

    orig_track: Optional[str] = None
    message: Optional[str] = None
    email: Optional[str] = None
    reopen: bool = False
    use_legacy_attachments: bool = False
    attachments: List[str] = Field(default_factory=list)
    legacy_uploads: List[LegacyUpload] = Field(default_factory=list)
    client_ip: str = "0.0.0.0"


class ReplyRecord(BaseModel):
    """Reply row to insert."""

    replyto: int
    name: str
    message: str
    message_html: str
    dt: datetime
    attachments: str = ""
    staffid: int = 0


class ReplyActivity(BaseModel):
    """Minimal reply view used by the sequential reply scan."""

    id: int
    staffid: Optional[int] = 0
    dt: datetime

    @property
    def by_customer(self) -> bool:
        return not self.staffid


class ReplyOutcome(BaseModel):
    """Result of a successful submission."""

    reply_id: int
    ticket_id: int
    trackid: str
    status: int
    attachments: List[StoredAttachment] = Field(default_factory=list)
    attachment_refs: str = ""
    message: str
