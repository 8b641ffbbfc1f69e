"""Attachment models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TemporaryAttachment(BaseModel):
    """Upload staged by the browser before the reply form is submitted."""

    saved_name: str
    real_name: str
    size: int = Field(ge=0)
    created: Optional[datetime] = None


class LegacyUpload(BaseModel):
    """One numbered file slot posted directly with the reply form."""

    slot: int = Field(ge=1)
    filename: str
    content: bytes


class AttachmentRecord(BaseModel):
    """Permanent attachment before it has a row id."""

    saved_name: str
    real_name: str
    size: int = Field(ge=0)


class MigratedAttachment(AttachmentRecord):
    """Permanent copy of a staged upload whose temporary file still exists."""

    temp_saved_name: str


class StoredAttachment(AttachmentRecord):
    """Attachment row inserted for a ticket."""

    att_id: int
    ticket_id: str


def encode_attachment_refs(attachments: List[StoredAttachment]) -> str:
    """Reference string kept on the reply row: ``<id>#<real_name>,`` per file."""
    return "".join(f"{att.att_id}#{att.real_name}," for att in attachments)


def decode_attachment_refs(value: str) -> List[tuple]:
    """Inverse of encode_attachment_refs, returns (att_id, real_name) pairs."""
    refs = []
    for chunk in (value or "").split(","):
        if "#" not in chunk:
            continue
        att_id, real_name = chunk.split("#", 1)
        if att_id.isdigit():
            refs.append((int(att_id), real_name))
    return refs
