"""Ticket store: parameterized SQLAlchemy Core statements behind typed methods."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.engine import Connection, Engine

from helpdesk_reply.models.attachment import AttachmentRecord, StoredAttachment, TemporaryAttachment
from helpdesk_reply.models.reply import ReplyActivity, ReplyRecord
from helpdesk_reply.models.staff import LoginAttempt, StaffUser
from helpdesk_reply.models.ticket import LastReplier, Ticket, TicketReplyUpdate
from helpdesk_reply.repositories.schema import HelpdeskTables, build_tables


def _split_categories(value: str) -> List[int]:
    return [int(c) for c in (value or "").split(",") if c.strip().isdigit()]


class TicketRepository:
    """Thin wrapper to keep SQL organized and parameterized.

    Every write method accepts an optional connection so callers can group
    statements in one transaction via ``transaction()``; without one the
    statement runs in its own transaction.
    """

    def __init__(self, engine: Engine, tables: Optional[HelpdeskTables] = None):
        self.engine = engine
        self.tables = tables or build_tables()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def _connection(self, conn: Optional[Connection]) -> Iterator[Connection]:
        if conn is not None:
            yield conn
        else:
            with self.engine.begin() as own:
                yield own

    # Tickets

    def _row_to_ticket(self, row) -> Ticket:
        data = dict(row._mapping)
        custom = {k: (data.pop(k) or "") for k in list(data) if k.startswith("custom")}
        data["locked"] = bool(data.get("locked"))
        return Ticket(**data, custom_fields=custom)

    def find_tickets_by_tracking_id(self, trackid: str) -> List[Ticket]:
        """At most two rows; more than one means the tracking id is ambiguous."""
        t = self.tables.tickets
        stmt = select(t).where(t.c.trackid == trackid).limit(2)
        with self.engine.connect() as conn:
            return [self._row_to_ticket(row) for row in conn.execute(stmt)]

    def find_ticket_by_tracking_id(self, trackid: str) -> Optional[Ticket]:
        tickets = self.find_tickets_by_tracking_id(trackid)
        return tickets[0] if len(tickets) == 1 else None

    def get_ticket(self, ticket_id: int, conn: Optional[Connection] = None) -> Optional[Ticket]:
        t = self.tables.tickets
        with self._connection(conn) as c:
            row = c.execute(select(t).where(t.c.id == ticket_id)).fetchone()
            return self._row_to_ticket(row) if row else None

    def update_ticket_on_reply(self, change: TicketReplyUpdate, conn: Optional[Connection] = None) -> None:
        t = self.tables.tickets
        stmt = (
            update(t)
            .where(t.c.id == change.ticket_id)
            .values(
                lastchange=change.lastchange,
                status=change.status,
                replies=t.c.replies + 1,
                lastreplier=int(LastReplier.CUSTOMER),
            )
        )
        with self._connection(conn) as c:
            c.execute(stmt)

    # Replies

    def insert_reply(self, reply: ReplyRecord, conn: Optional[Connection] = None) -> int:
        stmt = insert(self.tables.replies).values(**reply.model_dump())
        with self._connection(conn) as c:
            result = c.execute(stmt)
            return int(result.inserted_primary_key[0])

    def replies_since(self, ticket_id: int, since: datetime) -> List[ReplyActivity]:
        """Replies newer than ``since`` in insertion order."""
        r = self.tables.replies
        stmt = (
            select(r.c.id, r.c.staffid, r.c.dt)
            .where(and_(r.c.replyto == ticket_id, r.c.dt > since))
            .order_by(r.c.id.asc())
        )
        with self.engine.connect() as conn:
            return [ReplyActivity(**dict(row._mapping)) for row in conn.execute(stmt)]

    def list_replies(self, ticket_id: int) -> List[dict]:
        r = self.tables.replies
        stmt = select(r).where(r.c.replyto == ticket_id).order_by(r.c.id.asc())
        with self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt)]

    # Attachments

    def insert_attachment(
        self, trackid: str, record: AttachmentRecord, conn: Optional[Connection] = None
    ) -> StoredAttachment:
        stmt = insert(self.tables.attachments).values(
            ticket_id=trackid,
            saved_name=record.saved_name,
            real_name=record.real_name,
            size=record.size,
        )
        with self._connection(conn) as c:
            result = c.execute(stmt)
            att_id = int(result.inserted_primary_key[0])
        return StoredAttachment(
            att_id=att_id,
            ticket_id=trackid,
            saved_name=record.saved_name,
            real_name=record.real_name,
            size=record.size,
        )

    def find_temporary_attachment(self, saved_name: str) -> Optional[TemporaryAttachment]:
        ta = self.tables.temp_attachments
        stmt = select(ta.c.saved_name, ta.c.real_name, ta.c.size, ta.c.created).where(
            ta.c.saved_name == saved_name
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
            return TemporaryAttachment(**dict(row._mapping)) if row else None

    def delete_temporary_attachment(self, saved_name: str, conn: Optional[Connection] = None) -> bool:
        ta = self.tables.temp_attachments
        with self._connection(conn) as c:
            result = c.execute(delete(ta).where(ta.c.saved_name == saved_name))
            return result.rowcount > 0

    # Lockouts

    def get_login_attempt(self, ip: str) -> Optional[LoginAttempt]:
        lg = self.tables.logins
        stmt = (
            select(lg.c.ip, lg.c.number, lg.c.last_attempt)
            .where(lg.c.ip == ip)
            .order_by(lg.c.id.desc())
            .limit(1)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
            return LoginAttempt(**dict(row._mapping)) if row else None

    def insert_ban_record(self, ip: str, number: int, at: datetime) -> None:
        """Insert or refresh the lockout row for an IP."""
        lg = self.tables.logins
        with self.engine.begin() as conn:
            result = conn.execute(
                update(lg).where(lg.c.ip == ip).values(number=number, last_attempt=at)
            )
            if result.rowcount == 0:
                conn.execute(insert(lg).values(ip=ip, number=number, last_attempt=at))

    # Staff

    def _row_to_staff(self, row) -> StaffUser:
        data = dict(row._mapping)
        data["categories"] = _split_categories(data.get("categories", ""))
        return StaffUser(**data)

    def get_staff_user(self, user_id: int) -> Optional[StaffUser]:
        u = self.tables.users
        with self.engine.connect() as conn:
            row = conn.execute(select(u).where(u.c.id == user_id)).fetchone()
            return self._row_to_staff(row) if row else None

    def list_staff_with_preference(self, preference: str) -> List[StaffUser]:
        """Active staff whose notification flag ``preference`` is on."""
        u = self.tables.users
        stmt = (
            select(u)
            .where(and_(u.c[preference].is_(True), u.c.active.is_(True)))
            .order_by(u.c.id.asc())
        )
        with self.engine.connect() as conn:
            return [self._row_to_staff(row) for row in conn.execute(stmt)]
