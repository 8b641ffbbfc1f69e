"""
Push notification channels: Telegram bot API and Firebase Cloud Messaging.

Every channel is best-effort. A failing or slow channel is logged and
skipped; nothing here raises back into the reply flow.
"""

from __future__ import annotations

import functools
import html
from typing import Callable, List, Optional, Protocol

import httpx

from helpdesk_reply.config import HelpdeskSettings, PushSettings
from helpdesk_reply.models.notification import NotificationPayload
from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)

TELEGRAM_API = "https://api.telegram.org"
TELEGRAM_MAX_LENGTH = 4096
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"

EVENT_TITLES = {
    "reply_customer": "New reply from customer",
    "reply_staff": "New reply from staff",
}


def build_push_text(event: str, payload: NotificationPayload, is_staff: bool, raw_message: str) -> str:
    """Plain-text notification body shared by all channels."""
    title = EVENT_TITLES.get(event, "Ticket update")
    author = "Staff" if is_staff else payload.last_reply_by
    lines = [
        title,
        f"Ticket: #{payload.trackid}",
        f"Subject: {payload.subject}",
        f"From: {author}",
        "",
        html.unescape(raw_message or ""),
    ]
    return "\n".join(lines)


class PushChannel(Protocol):
    name: str

    def send(self, event: str, payload: NotificationPayload, text: str) -> None:
        """Deliver one notification; may raise."""


class TelegramChannel:
    """sendMessage to a fixed chat."""

    name = "telegram"

    def __init__(self, token: str, chat_id: str, client: httpx.Client):
        self.token = token
        self.chat_id = chat_id
        self.client = client

    def send(self, event: str, payload: NotificationPayload, text: str) -> None:
        if len(text) > TELEGRAM_MAX_LENGTH:
            text = text[: TELEGRAM_MAX_LENGTH - 3] + "..."
        response = self.client.post(
            f"{TELEGRAM_API}/bot{self.token}/sendMessage",
            json={"chat_id": self.chat_id, "text": text, "disable_web_page_preview": True},
        )
        if response.status_code >= 400:
            detail = None
            try:
                detail = response.json().get("description")
            except Exception:
                detail = response.text
            raise RuntimeError(f"Telegram API error {response.status_code}: {detail or 'unknown error'}")


def service_account_token_provider(service_account_info: dict, timeout_seconds: float = 5.0) -> Callable[[], str]:
    """OAuth access token for FCM HTTP v1, refreshed when it expires.

    The token request is bounded by ``timeout_seconds``.
    """
    from google.auth.transport.requests import Request
    from google.oauth2 import service_account

    credentials = service_account.Credentials.from_service_account_info(
        service_account_info, scopes=[FCM_SCOPE]
    )

    request = functools.partial(Request(), timeout=timeout_seconds)

    def _token() -> str:
        if not credentials.valid:
            credentials.refresh(request)
        return credentials.token

    return _token


class FcmChannel:
    """FCM HTTP v1 message to a topic."""

    name = "fcm"

    def __init__(self, project_id: str, topic: str, client: httpx.Client, token_provider: Callable[[], str]):
        self.project_id = project_id
        self.topic = topic
        self.client = client
        self.token_provider = token_provider

    def send(self, event: str, payload: NotificationPayload, text: str) -> None:
        title, _, body = text.partition("\n")
        message = {
            "message": {
                "topic": self.topic,
                "notification": {"title": title, "body": body[:1000]},
                "data": {
                    "event": event,
                    "ticket_id": str(payload.id),
                    "trackid": payload.trackid,
                    "status": str(payload.status),
                },
            }
        }
        response = self.client.post(
            f"https://fcm.googleapis.com/v1/projects/{self.project_id}/messages:send",
            headers={"Authorization": f"Bearer {self.token_provider()}"},
            json=message,
        )
        if response.status_code >= 400:
            detail = None
            try:
                detail = response.json().get("error", {}).get("message")
            except Exception:
                detail = response.text
            raise RuntimeError(f"FCM API error {response.status_code}: {detail or 'unknown error'}")


class PushNotifier:
    """Fan a ticket event out to every configured push channel."""

    def __init__(self, channels: List[PushChannel]):
        self.channels = channels

    @classmethod
    def from_settings(cls, push: PushSettings, client: Optional[httpx.Client] = None) -> Optional["PushNotifier"]:
        """None when no channel is configured or none could be built.

        A channel whose credentials cannot be loaded is logged and left out.
        """
        if not push.enabled:
            return None
        client = client or httpx.Client(timeout=push.timeout_seconds)
        channels: List[PushChannel] = []
        if push.telegram_enabled:
            channels.append(TelegramChannel(push.telegram_token, push.telegram_chat_id, client))
        if push.fcm_enabled:
            try:
                token_provider = service_account_token_provider(
                    push.fcm_service_account, push.timeout_seconds
                )
            except Exception as exc:
                logger.error("FCM channel disabled", extra={"error": str(exc)})
            else:
                channels.append(FcmChannel(push.fcm_project_id, push.fcm_topic, client, token_provider))
        if not channels:
            return None
        return cls(channels)

    def send(
        self,
        settings: HelpdeskSettings,
        event: str,
        payload: NotificationPayload,
        is_staff: bool,
        raw_message: str,
    ) -> List[str]:
        """Returns the names of channels that delivered."""
        text = build_push_text(event, payload, is_staff, raw_message)
        delivered = []
        for channel in self.channels:
            try:
                channel.send(event, payload, text)
                delivered.append(channel.name)
            except httpx.TimeoutException:
                logger.warning(
                    "Push notification timed out",
                    extra={"channel": channel.name, "trackid": payload.trackid, "environment": settings.environment},
                )
            except Exception as exc:
                logger.error(
                    "Push notification failed",
                    extra={"channel": channel.name, "trackid": payload.trackid, "error": str(exc)},
                )
        return delivered
