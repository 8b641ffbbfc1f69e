"""
Runtime settings for the reply Lambda.

Defaults mirror a stock help desk install (3 second flood window, 6
attempts, 60 minute lockout, two 2 MB attachments). Every value can be
overridden through environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

import boto3

from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_ALLOWED_TYPES = (
    ".gif", ".jpg", ".png", ".zip", ".rar", ".csv", ".doc", ".docx",
    ".xls", ".xlsx", ".txt", ".pdf",
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


def _env_csv(name: str) -> Tuple[str, ...]:
    value = os.environ.get(name, "")
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_secret_json(secret_arn: str) -> dict:
    """Read a JSON secret from Secrets Manager."""
    sm = boto3.client("secretsmanager")
    secret_value = sm.get_secret_value(SecretId=secret_arn)["SecretString"]
    return json.loads(secret_value)


@dataclass(frozen=True)
class AttachmentSettings:
    """Upload limits; max_size is in bytes."""

    use: bool = True
    max_number: int = 2
    max_size: int = 2097152
    allowed_types: Tuple[str, ...] = DEFAULT_ALLOWED_TYPES

    def allows(self, filename: str) -> bool:
        ext = os.path.splitext(filename or "")[1].lower()
        return bool(ext) and ext in self.allowed_types


@dataclass(frozen=True)
class PushSettings:
    """Telegram and FCM credentials. Empty values disable a channel."""

    telegram_token: str = ""
    telegram_chat_id: str = ""
    fcm_project_id: str = ""
    fcm_topic: str = "helpdesk"
    fcm_service_account: Optional[dict] = None
    timeout_seconds: float = 5.0

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)

    @property
    def fcm_enabled(self) -> bool:
        return bool(self.fcm_project_id and self.fcm_service_account)

    @property
    def enabled(self) -> bool:
        return self.telegram_enabled or self.fcm_enabled

    @classmethod
    def from_environment(cls) -> "PushSettings":
        """Env vars first; PUSH_SECRET_ARN fills in whatever is missing."""
        secret: dict = {}
        secret_arn = os.environ.get("PUSH_SECRET_ARN")
        if secret_arn:
            try:
                secret = load_secret_json(secret_arn)
            except Exception as exc:
                logger.warning("Failed to load push secret", extra={"error": str(exc)})

        service_account = secret.get("fcm_service_account")
        raw_sa = os.environ.get("FCM_SERVICE_ACCOUNT_JSON")
        if raw_sa:
            try:
                parsed = json.loads(raw_sa)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                service_account = parsed
            else:
                logger.warning("Ignoring malformed FCM_SERVICE_ACCOUNT_JSON")

        return cls(
            telegram_token=os.environ.get("TELEGRAM_TOKEN") or secret.get("telegram_token", ""),
            telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID") or secret.get("telegram_chat_id", ""),
            fcm_project_id=os.environ.get("FCM_PROJECT_ID")
            or secret.get("fcm_project_id")
            or (service_account or {}).get("project_id", ""),
            fcm_topic=os.environ.get("FCM_TOPIC", "helpdesk"),
            fcm_service_account=service_account,
            timeout_seconds=float(os.environ.get("PUSH_TIMEOUT_SECONDS", "5")),
        )


@dataclass(frozen=True)
class HelpdeskSettings:
    """Settings read by the reply workflow and its collaborators."""

    environment: str = "dev"

    # Database
    database_url: Optional[str] = None
    db_secret_arn: Optional[str] = None
    db_prefix: str = "hesk_"

    # Security
    flood: int = 3
    attempt_limit: int = 6
    attempt_banmin: int = 60
    email_view_ticket: bool = True
    sequential_reply_window_minutes: int = 10
    sequential_reply_limit: int = 10

    # Tickets
    custom_fields: Dict[str, bool] = field(default_factory=dict)
    customer_locked_statuses: FrozenSet[int] = frozenset()

    # Attachments
    attachments: AttachmentSettings = field(default_factory=AttachmentSettings)
    attachments_bucket: str = ""

    # Sessions
    sessions_table: str = "helpdesk-sessions"
    session_ttl_seconds: int = 86400

    # Email
    hesk_url: str = "http://localhost/hesk"
    entry_url: str = "index.php"
    noreply_mail: str = "support@example.com"
    noreply_name: str = "Help Desk"
    notify_email_enabled: bool = True

    push: PushSettings = field(default_factory=PushSettings)

    @classmethod
    def from_environment(cls) -> "HelpdeskSettings":
        """Load settings from environment variables."""
        custom_fields = {}
        for item in _env_csv("CUSTOM_FIELDS"):
            name, _, flag = item.partition(":")
            custom_fields[name] = flag != "0"

        hesk_url = os.environ.get("HESK_URL", "http://localhost/hesk").rstrip("/")

        return cls(
            environment=os.environ.get("ENVIRONMENT", "dev"),
            database_url=os.environ.get("DATABASE_URL"),
            db_secret_arn=os.environ.get("DB_SECRET_ARN"),
            db_prefix=os.environ.get("DB_PREFIX", "hesk_"),
            flood=_env_int("FLOOD_SECONDS", 3),
            attempt_limit=_env_int("ATTEMPT_LIMIT", 6),
            attempt_banmin=_env_int("ATTEMPT_BANMIN", 60),
            email_view_ticket=_env_bool("EMAIL_VIEW_TICKET", True),
            sequential_reply_window_minutes=_env_int("SEQUENTIAL_REPLY_WINDOW_MINUTES", 10),
            sequential_reply_limit=_env_int("SEQUENTIAL_REPLY_LIMIT", 10),
            custom_fields=custom_fields,
            customer_locked_statuses=frozenset(int(s) for s in _env_csv("CUSTOMER_LOCKED_STATUSES")),
            attachments=AttachmentSettings(
                use=_env_bool("ATTACHMENTS_USE", True),
                max_number=_env_int("ATTACHMENTS_MAX_NUMBER", 2),
                max_size=_env_int("ATTACHMENTS_MAX_SIZE", 2097152),
                allowed_types=tuple(t.lower() for t in _env_csv("ATTACHMENTS_ALLOWED_TYPES"))
                or DEFAULT_ALLOWED_TYPES,
            ),
            attachments_bucket=os.environ.get("ATTACHMENTS_BUCKET", ""),
            sessions_table=os.environ.get("SESSIONS_TABLE", "helpdesk-sessions"),
            session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", 86400),
            hesk_url=hesk_url,
            entry_url=os.environ.get("ENTRY_URL", f"{hesk_url}/index.php"),
            noreply_mail=os.environ.get("NOREPLY_MAIL", "support@example.com"),
            noreply_name=os.environ.get("NOREPLY_NAME", "Help Desk"),
            notify_email_enabled=_env_bool("NOTIFY_EMAIL_ENABLED", True),
            push=PushSettings.from_environment(),
        )
