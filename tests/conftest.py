"""
Pytest configuration and shared fixtures.

src/ is put on sys.path so tests run without installing the package. The
ticket store runs on a throwaway SQLite file; S3, DynamoDB and SES are
replaced by small in-memory fakes.
"""

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import boto3
import pytest
from botocore.exceptions import ClientError


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing."""
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

boto3.setup_default_session(region_name="eu-west-2")

from sqlalchemy import create_engine, insert  # noqa: E402

from helpdesk_reply.config import AttachmentSettings, HelpdeskSettings  # noqa: E402
from helpdesk_reply.repositories.dynamodb_repo import SessionStore  # noqa: E402
from helpdesk_reply.repositories.s3_repo import AttachmentStorage  # noqa: E402
from helpdesk_reply.repositories.schema import build_tables  # noqa: E402
from helpdesk_reply.repositories.ticket_repo import TicketRepository  # noqa: E402
from helpdesk_reply.services.attachment_service import AttachmentService  # noqa: E402
from helpdesk_reply.services.flood_guard import FloodGuard  # noqa: E402
from helpdesk_reply.services.notification_service import NotificationFanout  # noqa: E402
from helpdesk_reply.services.reply_service import ReplyService  # noqa: E402
from helpdesk_reply.services.staff_email_service import StaffEmailNotifier  # noqa: E402
from helpdesk_reply.services.status_policy import TicketStatusPolicy  # noqa: E402
from helpdesk_reply.utils.clock import utcnow  # noqa: E402


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """Just enough of the S3 client for AttachmentStorage."""

    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, **kwargs):
        self.objects[Key] = Body

    def copy_object(self, Bucket, Key, CopySource):
        src = CopySource["Key"]
        if src not in self.objects:
            raise _client_error("NoSuchKey", "CopyObject")
        self.objects[Key] = self.objects[src]

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)


class FakeSesClient:
    def __init__(self):
        self.sent = []

    def send_email(self, Source, Destination, Message):
        self.sent.append({"source": Source, "to": Destination["ToAddresses"], "message": Message})
        return {"MessageId": f"msg-{len(self.sent)}"}


class FakeSessionTable:
    """DynamoDB Table stand-in understanding the SessionStore expressions."""

    def __init__(self):
        self.items = {}

    def get_item(self, Key):
        item = self.items.get(Key["session_id"])
        return {"Item": dict(item)} if item else {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues, ConditionExpression=None):
        item = self.items.setdefault(Key["session_id"], {"session_id": Key["session_id"]})
        values = ExpressionAttributeValues
        if ":threshold" in values:
            last = item.get("last_reply_timestamp")
            if last is not None and last > values[":threshold"]:
                raise _client_error("ConditionalCheckFailedException", "UpdateItem")
            item["last_reply_timestamp"] = values[":now"]
        if ":d" in values:
            item["data"] = values[":d"]
        item["ttl"] = values[":ttl"]

    def delete_item(self, Key):
        self.items.pop(Key["session_id"], None)


class RecordingPushNotifier:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def send(self, settings, event, payload, is_staff, raw_message):
        self.calls.append(
            {"event": event, "payload": payload, "is_staff": is_staff, "raw_message": raw_message}
        )
        if self.fail:
            raise RuntimeError("push backend down")
        return ["telegram"]


@pytest.fixture
def settings():
    return HelpdeskSettings(
        flood=3,
        attempt_limit=6,
        attempt_banmin=60,
        email_view_ticket=True,
        custom_fields={"custom1": True, "custom2": False},
        attachments=AttachmentSettings(use=True, max_number=2, max_size=1024),
        attachments_bucket="test-bucket",
        hesk_url="https://help.example.com",
    )


@pytest.fixture
def tables():
    return build_tables("hesk_")


@pytest.fixture
def engine(tmp_path, tables):
    engine = create_engine(f"sqlite:///{tmp_path / 'hesk.db'}")
    tables.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine, tables):
    return TicketRepository(engine, tables)


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def storage(s3_client):
    return AttachmentStorage("test-bucket", client=s3_client)


@pytest.fixture
def ses_client():
    return FakeSesClient()


@pytest.fixture
def push_notifier():
    return RecordingPushNotifier()


@pytest.fixture
def session_table():
    return FakeSessionTable()


@pytest.fixture
def session_store(session_table):
    return SessionStore("test-sessions", ttl_seconds=3600, table=session_table)


@pytest.fixture
def make_ticket(engine, tables):
    """Insert a ticket row and return its id."""

    def _make(**overrides):
        now = utcnow()
        values = dict(
            trackid="ABC-DEF-1234",
            name="Jane Doe",
            email="jane@example.com",
            category=1,
            priority=2,
            owner=0,
            subject="Printer on fire",
            status=0,
            dt=now - timedelta(days=1),
            lastchange=now - timedelta(days=1),
            replies=0,
            lastreplier=0,
            locked=0,
            custom1="Building A",
            custom2="secret",
        )
        values.update(overrides)
        with engine.begin() as conn:
            result = conn.execute(insert(tables.tickets).values(**values))
            return int(result.inserted_primary_key[0])

    return _make


@pytest.fixture
def make_reply(engine, tables):
    def _make(ticket_id: int, staffid: int = 0, dt: datetime = None, message: str = "hi"):
        with engine.begin() as conn:
            conn.execute(
                insert(tables.replies).values(
                    replyto=ticket_id,
                    name="x",
                    message=message,
                    message_html=message,
                    dt=dt or utcnow(),
                    attachments="",
                    staffid=staffid,
                )
            )

    return _make


@pytest.fixture
def make_staff(engine, tables):
    def _make(**overrides):
        values = dict(
            name="Agent",
            email="agent@example.com",
            isadmin=False,
            categories="1",
            notify_reply_my=True,
            notify_reply_unassigned=True,
            active=True,
        )
        values.update(overrides)
        with engine.begin() as conn:
            result = conn.execute(insert(tables.users).values(**values))
            return int(result.inserted_primary_key[0])

    return _make


@pytest.fixture
def stage_temp_attachment(engine, tables, s3_client):
    """Register a staged upload (row + file) the way the upload endpoint would."""

    def _stage(saved_name: str, real_name: str, content: bytes = b"data", with_file: bool = True):
        with engine.begin() as conn:
            conn.execute(
                insert(tables.temp_attachments).values(
                    saved_name=saved_name, real_name=real_name, size=len(content), created=utcnow()
                )
            )
        if with_file:
            s3_client.objects[AttachmentStorage.temp_key(saved_name)] = content

    return _stage


@pytest.fixture
def reply_service(settings, repository, storage, ses_client, push_notifier):
    return ReplyService(
        settings=settings,
        repository=repository,
        flood_guard=FloodGuard(repository, settings),
        status_policy=TicketStatusPolicy(frozenset({7})),
        fanout=NotificationFanout(
            settings,
            StaffEmailNotifier(repository, settings, ses_client=ses_client),
            push_notifier,
        ),
        attachments=AttachmentService(repository, storage, settings.attachments),
    )
