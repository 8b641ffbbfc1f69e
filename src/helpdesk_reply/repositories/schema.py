"""SQLAlchemy Core table definitions for the help desk tables we touch."""

from dataclasses import dataclass

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
)

CUSTOM_FIELD_COUNT = 20


@dataclass(frozen=True)
class HelpdeskTables:
    metadata: MetaData
    tickets: Table
    replies: Table
    attachments: Table
    temp_attachments: Table
    logins: Table
    users: Table


def build_tables(prefix: str = "hesk_", custom_field_count: int = CUSTOM_FIELD_COUNT) -> HelpdeskTables:
    """Create table objects for a given table prefix."""
    metadata = MetaData()

    custom_columns = [
        Column(f"custom{i}", Text, nullable=False, default="")
        for i in range(1, custom_field_count + 1)
    ]

    tickets = Table(
        f"{prefix}tickets",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("trackid", String(13), nullable=False, index=True),
        Column("name", String(255), nullable=False, default=""),
        Column("email", String(1000), nullable=False, default=""),
        Column("category", Integer, nullable=False, default=1),
        Column("priority", SmallInteger, nullable=False, default=3),
        Column("owner", Integer, nullable=False, default=0),
        Column("subject", String(255), nullable=False, default=""),
        Column("status", SmallInteger, nullable=False, default=0),
        Column("dt", DateTime, nullable=False),
        Column("lastchange", DateTime, nullable=False),
        Column("replies", Integer, nullable=False, default=0),
        Column("lastreplier", SmallInteger, nullable=False, default=0),
        Column("due_date", DateTime, nullable=True),
        Column("time_worked", String(10), nullable=False, default="00:00:00"),
        Column("locked", SmallInteger, nullable=False, default=0),
        *custom_columns,
    )

    replies = Table(
        f"{prefix}replies",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("replyto", Integer, nullable=False, index=True),
        Column("name", String(255), nullable=False, default=""),
        Column("message", Text, nullable=False),
        Column("message_html", Text, nullable=False),
        Column("dt", DateTime, nullable=False),
        Column("attachments", Text, nullable=False, default=""),
        Column("staffid", Integer, nullable=False, default=0),
    )

    attachments = Table(
        f"{prefix}attachments",
        metadata,
        Column("att_id", Integer, primary_key=True, autoincrement=True),
        Column("ticket_id", String(13), nullable=False, index=True),
        Column("saved_name", String(255), nullable=False),
        Column("real_name", String(255), nullable=False),
        Column("size", Integer, nullable=False, default=0),
    )

    temp_attachments = Table(
        f"{prefix}temp_attachments",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("saved_name", String(255), nullable=False, unique=True),
        Column("real_name", String(255), nullable=False),
        Column("size", Integer, nullable=False, default=0),
        Column("created", DateTime, nullable=True),
    )

    logins = Table(
        f"{prefix}logins",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("ip", String(45), nullable=False, index=True),
        Column("number", SmallInteger, nullable=False, default=1),
        Column("last_attempt", DateTime, nullable=True),
    )

    users = Table(
        f"{prefix}users",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(255), nullable=False, default=""),
        Column("email", String(255), nullable=False, default=""),
        Column("isadmin", Boolean, nullable=False, default=False),
        Column("categories", String(500), nullable=False, default=""),
        Column("notify_reply_my", Boolean, nullable=False, default=True),
        Column("notify_reply_unassigned", Boolean, nullable=False, default=True),
        Column("active", Boolean, nullable=False, default=True),
    )

    return HelpdeskTables(
        metadata=metadata,
        tickets=tickets,
        replies=replies,
        attachments=attachments,
        temp_attachments=temp_attachments,
        logins=logins,
        users=users,
    )
