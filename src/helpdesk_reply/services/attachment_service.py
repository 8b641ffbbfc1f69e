"""
Attachment Migrator.

Two upload paths converge on the same AttachmentRecord shape:

- staged uploads: the browser uploads files first and posts their temporary
  names with the reply; at submission time they are copied under the ticket;
- legacy uploads: numbered file slots posted with the form itself, written
  straight to permanent storage.
"""

from __future__ import annotations

import mimetypes
import os
import secrets
from typing import Iterable, List, Optional, Tuple

from botocore.exceptions import ClientError
from sqlalchemy.engine import Connection

from helpdesk_reply.config import AttachmentSettings
from helpdesk_reply.models.attachment import (
    AttachmentRecord,
    LegacyUpload,
    MigratedAttachment,
    TemporaryAttachment,
)
from helpdesk_reply.models.reply import ValidationIssue
from helpdesk_reply.repositories.s3_repo import AttachmentStorage
from helpdesk_reply.repositories.ticket_repo import TicketRepository
from helpdesk_reply.utils.logging_config import get_logger
from helpdesk_reply.utils.messages import msg

logger = get_logger(__name__)


def _human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


def permanent_saved_name(trackid: str, real_name: str) -> str:
    """Stored file name: tracking id, random token, original extension."""
    ext = os.path.splitext(real_name)[1].lower()
    return f"{trackid}_{secrets.token_hex(16)}{ext}"


class AttachmentService:
    """Resolve, upload and migrate reply attachments."""

    def __init__(
        self,
        repository: TicketRepository,
        storage: AttachmentStorage,
        settings: AttachmentSettings,
    ):
        self.repository = repository
        self.storage = storage
        self.settings = settings

    def resolve_temporary(self, names: Iterable[str]) -> List[TemporaryAttachment]:
        """Look up staged uploads by name; unknown names are dropped."""
        resolved = []
        for name in names:
            if not name:
                continue
            temp = self.repository.find_temporary_attachment(name)
            if temp is None:
                logger.info("Temporary attachment not found", extra={"saved_name": name})
                continue
            resolved.append(temp)
        return resolved

    def upload_legacy(
        self, uploads: Iterable[LegacyUpload], trackid: str
    ) -> Tuple[List[AttachmentRecord], List[ValidationIssue]]:
        """Validate and store numbered file slots.

        Slots beyond max_number are ignored; rejected files become
        validation issues so the caller can report them with the rest.
        """
        records: List[AttachmentRecord] = []
        issues: List[ValidationIssue] = []

        for upload in sorted(uploads, key=lambda u: u.slot):
            if upload.slot > self.settings.max_number or not upload.filename:
                continue
            field = f"attachment_{upload.slot}"
            if not self.settings.allows(upload.filename):
                issues.append(
                    ValidationIssue(
                        code="type_not_allowed",
                        message=msg("type_not_allowed", filename=upload.filename),
                        field=field,
                    )
                )
                continue
            if len(upload.content) > self.settings.max_size:
                issues.append(
                    ValidationIssue(
                        code="file_too_large",
                        message=msg(
                            "file_too_large",
                            filename=upload.filename,
                            max_size=_human_size(self.settings.max_size),
                        ),
                        field=field,
                    )
                )
                continue
            if not upload.content:
                issues.append(
                    ValidationIssue(
                        code="cannot_read_file",
                        message=msg("cannot_read_file", filename=upload.filename),
                        field=field,
                    )
                )
                continue

            saved_name = permanent_saved_name(trackid, upload.filename)
            content_type, _ = mimetypes.guess_type(upload.filename)
            self.storage.upload_bytes(self.storage.permanent_key(saved_name), upload.content, content_type)
            records.append(
                AttachmentRecord(saved_name=saved_name, real_name=upload.filename, size=len(upload.content))
            )

        return records, issues

    def migrate_temporary_attachments(
        self,
        temp_attachments: Iterable[TemporaryAttachment],
        trackid: str,
        conn: Optional[Connection] = None,
    ) -> List[MigratedAttachment]:
        """Copy staged files under the ticket; vanished ones are skipped.

        Temporary rows are deleted on ``conn`` but the temporary files stay
        until ``release_temporary_files`` runs after the commit. If the
        transaction fails, ``remove_attachments`` drops the copies and the
        staged uploads are intact for a resubmission.
        """
        migrated: List[MigratedAttachment] = []
        for temp in temp_attachments:
            if not self.repository.delete_temporary_attachment(temp.saved_name, conn=conn):
                logger.info("Temporary attachment vanished", extra={"saved_name": temp.saved_name})
                continue

            saved_name = permanent_saved_name(trackid, temp.real_name)
            copied = self.storage.copy(
                self.storage.temp_key(temp.saved_name), self.storage.permanent_key(saved_name)
            )
            if not copied:
                logger.info("Temporary attachment file missing", extra={"saved_name": temp.saved_name})
                continue

            migrated.append(
                MigratedAttachment(
                    saved_name=saved_name,
                    real_name=temp.real_name,
                    size=temp.size,
                    temp_saved_name=temp.saved_name,
                )
            )
        return migrated

    def release_temporary_files(self, migrated: Iterable[MigratedAttachment]) -> None:
        """Delete staged files whose permanent copies are committed.

        The reply is already stored, so a failed delete is logged and the
        file is left for the bucket lifecycle rule.
        """
        for record in migrated:
            key = self.storage.temp_key(record.temp_saved_name)
            try:
                self.storage.delete(key)
            except ClientError as exc:
                logger.warning("Staged file not released", extra={"key": key, "error": str(exc)})

    def remove_attachments(self, records: Iterable[AttachmentRecord]) -> None:
        """Delete permanently stored files of an aborted submission."""
        for record in records:
            self.storage.delete(self.storage.permanent_key(record.saved_name))
