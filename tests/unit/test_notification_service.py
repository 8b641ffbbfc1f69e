"""Notification Fanout, staff email routing and push channel tests."""

import json
from datetime import datetime

import httpx
import pytest

from helpdesk_reply.config import PushSettings
from helpdesk_reply.models.notification import NotificationPayload
from helpdesk_reply.models.ticket import Ticket
from helpdesk_reply.services.notification_service import NotificationFanout
from helpdesk_reply.services.push_service import (
    FcmChannel,
    PushNotifier,
    TelegramChannel,
    build_push_text,
    service_account_token_provider,
)
from helpdesk_reply.services.staff_email_service import StaffEmailNotifier


def _payload(**overrides) -> NotificationPayload:
    ticket = Ticket(
        id=42,
        trackid="ABC-DEF-1234",
        name="Jane Doe",
        email="jane@example.com",
        category=1,
        priority=2,
        owner=overrides.pop("owner", 0),
        subject="Printer on fire",
        status=1,
        dt=datetime(2024, 5, 1, 9, 30),
        lastchange=datetime(2024, 5, 2, 10, 0),
        custom_fields={"custom1": "Building A"},
    )
    return NotificationPayload.from_ticket(ticket, "It is <b>still</b> burning", "", {"custom1": True})


class TestStaffRouting:
    def test_unassigned_goes_to_subscribed_staff_in_category(self, repository, settings, ses_client, make_staff):
        make_staff(email="cat1@example.com", categories="1,3")
        make_staff(email="cat2@example.com", categories="2")
        make_staff(email="admin@example.com", categories="", isadmin=True)
        make_staff(email="inactive@example.com", active=False)

        notifier = StaffEmailNotifier(repository, settings, ses_client=ses_client)
        sent_to = notifier.notify_staff(_payload(), "new_reply_by_customer")

        assert sent_to == ["admin@example.com", "cat1@example.com"]
        assert len(ses_client.sent) == 2
        body = ses_client.sent[0]["message"]["Body"]["Text"]["Data"]
        assert "https://help.example.com/admin/admin_ticket.php?track=ABC-DEF-1234" in body

    def test_owner_only_when_subscribed(self, repository, settings, ses_client, make_staff):
        owner_id = make_staff(email="owner@example.com", notify_reply_my=False)
        notifier = StaffEmailNotifier(repository, settings, ses_client=ses_client)
        assert notifier.notify_assigned_staff(_payload(owner=owner_id), "new_reply_by_customer") == []
        assert ses_client.sent == []

    def test_unknown_owner_is_skipped(self, repository, settings, ses_client):
        notifier = StaffEmailNotifier(repository, settings, ses_client=ses_client)
        assert notifier.notify_assigned_staff(_payload(owner=999), "new_reply_by_customer") == []


class _ExplodingStaffNotifier:
    def notify_staff(self, *args, **kwargs):
        raise RuntimeError("SES throttled")

    notify_assigned_staff = notify_staff


class TestFanout:
    def test_email_failure_does_not_block_push(self, settings, push_notifier):
        fanout = NotificationFanout(settings, _ExplodingStaffNotifier(), push_notifier)
        report = fanout.dispatch(_payload(), "raw text")
        assert report.email_failed is True
        assert report.pushed == ["telegram"]
        assert push_notifier.calls[0]["raw_message"] == "raw text"

    def test_push_failure_is_reported_not_raised(self, settings, push_notifier):
        push_notifier.fail = True
        report = NotificationFanout(settings, None, push_notifier).dispatch(_payload(), "raw")
        assert report.push_failed is True
        assert report.emailed == []

    def test_no_channels_configured(self, settings):
        report = NotificationFanout(settings).dispatch(_payload(), "raw")
        assert report.emailed == [] and report.pushed == []


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestPushChannels:
    def test_push_text_uses_unescaped_raw_message(self):
        text = build_push_text("reply_customer", _payload(), False, "a &lt;b&gt; c")
        assert text.splitlines()[0] == "New reply from customer"
        assert "From: Jane Doe" in text
        assert text.endswith("a <b> c")

    def test_telegram_posts_to_bot_api(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        TelegramChannel("TOKEN", "-100", _client(handler)).send("reply_customer", _payload(), "x" * 5000)

        assert seen["url"] == "https://api.telegram.org/botTOKEN/sendMessage"
        assert seen["body"]["chat_id"] == "-100"
        assert len(seen["body"]["text"]) == 4096

    def test_telegram_error_raises(self):
        channel = TelegramChannel(
            "TOKEN", "-100", _client(lambda r: httpx.Response(400, json={"description": "chat not found"}))
        )
        with pytest.raises(RuntimeError, match="chat not found"):
            channel.send("reply_customer", _payload(), "hi")

    def test_fcm_sends_to_topic_with_bearer_token(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"name": "projects/p/messages/1"})

        channel = FcmChannel("my-project", "helpdesk", _client(handler), lambda: "tok")
        channel.send("reply_customer", _payload(), "Title\nBody text")

        assert seen["url"] == "https://fcm.googleapis.com/v1/projects/my-project/messages:send"
        assert seen["auth"] == "Bearer tok"
        message = seen["body"]["message"]
        assert message["topic"] == "helpdesk"
        assert message["notification"] == {"title": "Title", "body": "Body text"}
        assert message["data"]["trackid"] == "ABC-DEF-1234"

    def test_notifier_logs_and_skips_failing_channels(self, settings):
        def timeout(request):
            raise httpx.ReadTimeout("slow", request=request)

        ok = TelegramChannel("T", "1", _client(lambda r: httpx.Response(200, json={"ok": True})))
        slow = TelegramChannel("T", "2", _client(timeout))
        slow.name = "telegram-slow"
        broken = FcmChannel("p", "t", _client(lambda r: httpx.Response(500, text="boom")), lambda: "tok")

        delivered = PushNotifier([slow, broken, ok]).send(settings, "reply_customer", _payload(), False, "hi")

        assert delivered == ["telegram"]

    def test_from_settings_without_credentials_is_none(self):
        assert PushNotifier.from_settings(PushSettings()) is None

    def test_broken_fcm_credentials_drop_only_that_channel(self):
        notifier = PushNotifier.from_settings(
            PushSettings(
                telegram_token="T",
                telegram_chat_id="1",
                fcm_project_id="p",
                fcm_service_account={"type": "service_account"},
            )
        )
        assert [c.name for c in notifier.channels] == ["telegram"]

    def test_broken_fcm_credentials_alone_mean_no_notifier(self):
        push = PushSettings(fcm_project_id="p", fcm_service_account={"type": "service_account"})
        assert PushNotifier.from_settings(push) is None

    def test_token_refresh_is_bounded_by_push_timeout(self, monkeypatch):
        from google.auth.transport import requests as google_requests
        from google.oauth2 import service_account

        seen = {}

        class FakeCredentials:
            valid = False
            token = None

            def refresh(self, request):
                request(url="https://oauth2.googleapis.com/token", method="POST", body=b"", headers={})
                self.token = "fresh"
                self.valid = True

        def fake_call(self, url, method="GET", body=None, headers=None, timeout=120, **kwargs):
            seen["timeout"] = timeout

        monkeypatch.setattr(
            service_account.Credentials,
            "from_service_account_info",
            lambda info, scopes=None: FakeCredentials(),
        )
        monkeypatch.setattr(google_requests.Request, "__call__", fake_call)

        token = service_account_token_provider({"client_email": "x"}, timeout_seconds=2.5)

        assert token() == "fresh"
        assert seen["timeout"] == 2.5

    def test_from_settings_builds_telegram_channel(self):
        notifier = PushNotifier.from_settings(PushSettings(telegram_token="T", telegram_chat_id="1"))
        assert [c.name for c in notifier.channels] == ["telegram"]
