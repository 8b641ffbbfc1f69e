"""
Handler for POST /reply_ticket.

Parses the customer reply form (urlencoded or JSON), loads the session
from its cookie, runs the reply workflow and saves the session back no
matter how the workflow ended, since throttling and resubmission data
live there.
"""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

from pydantic import ValidationError

from helpdesk_reply.models.attachment import LegacyUpload
from helpdesk_reply.models.reply import ReplyRequest
from helpdesk_reply.models.session import ReplySession
from helpdesk_reply.utils.error_handling import (
    AppError,
    MalformedRequestError,
    PayloadTooLargeError,
    to_response,
)
from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)

SESSION_COOKIE = "HESK_SESSION"

# Lazy-loaded collaborators to avoid import-time DB/AWS connections
_settings = None
_reply_service = None
_session_store = None


def _get_settings():
    global _settings
    if _settings is None:
        from helpdesk_reply.config import HelpdeskSettings
        _settings = HelpdeskSettings.from_environment()
    return _settings


def build_reply_service(settings):
    """Wire the reply workflow from settings."""
    from helpdesk_reply.repositories.database import get_db_engine
    from helpdesk_reply.repositories.s3_repo import AttachmentStorage
    from helpdesk_reply.repositories.schema import build_tables
    from helpdesk_reply.repositories.ticket_repo import TicketRepository
    from helpdesk_reply.services.attachment_service import AttachmentService
    from helpdesk_reply.services.flood_guard import FloodGuard
    from helpdesk_reply.services.notification_service import NotificationFanout
    from helpdesk_reply.services.push_service import PushNotifier
    from helpdesk_reply.services.reply_service import ReplyService
    from helpdesk_reply.services.staff_email_service import StaffEmailNotifier
    from helpdesk_reply.services.status_policy import TicketStatusPolicy

    engine = get_db_engine(settings)
    if engine is None:
        raise RuntimeError("Database is not configured")

    repository = TicketRepository(engine, build_tables(settings.db_prefix))
    attachments = None
    if settings.attachments.use and settings.attachments_bucket:
        attachments = AttachmentService(
            repository, AttachmentStorage(settings.attachments_bucket), settings.attachments
        )
    staff_notifier = StaffEmailNotifier(repository, settings) if settings.notify_email_enabled else None

    return ReplyService(
        settings=settings,
        repository=repository,
        flood_guard=FloodGuard(repository, settings),
        status_policy=TicketStatusPolicy(settings.customer_locked_statuses),
        fanout=NotificationFanout(settings, staff_notifier, PushNotifier.from_settings(settings.push)),
        attachments=attachments,
    )


def _get_reply_service():
    global _reply_service
    if _reply_service is None:
        _reply_service = build_reply_service(_get_settings())
    return _reply_service


def _get_session_store():
    global _session_store
    if _session_store is None:
        from helpdesk_reply.repositories.dynamodb_repo import SessionStore
        settings = _get_settings()
        _session_store = SessionStore(settings.sessions_table, settings.session_ttl_seconds)
    return _session_store


def _headers(event: Dict) -> Dict[str, str]:
    return {k.lower(): v for k, v in (event.get("headers") or {}).items()}


def _session_id(event: Dict) -> Optional[str]:
    raw = list(event.get("cookies") or [])
    header = _headers(event).get("cookie")
    if header:
        raw.extend(header.split(";"))
    cookie = SimpleCookie()
    for item in raw:
        try:
            cookie.load(item.strip())
        except CookieError:
            continue
    morsel = cookie.get(SESSION_COOKIE)
    return morsel.value if morsel else None


def _parse_body(event: Dict) -> Dict[str, Any]:
    body = event.get("body") or ""
    if event.get("isBase64Encoded") and body:
        try:
            body = base64.b64decode(body).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError):
            raise MalformedRequestError()

    content_type = _headers(event).get("content-type", "")
    if "application/json" in content_type:
        try:
            form = json.loads(body or "{}")
        except ValueError:
            raise MalformedRequestError()
        if not isinstance(form, dict):
            raise MalformedRequestError()
        return form

    parsed = parse_qs(body, keep_blank_values=True)
    form: Dict[str, Any] = {}
    for key, values in parsed.items():
        if key.endswith("[]"):
            form[key[:-2]] = values
        else:
            form[key] = values[-1]
    return form


def _text(value: Any) -> Optional[str]:
    """Scalars become strings; nested JSON values are rejected by the model."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _flag(value: Any) -> bool:
    return str(value).strip().lower() in ("1", "true", "on", "yes")


def _legacy_uploads(form: Dict[str, Any]) -> List[LegacyUpload]:
    uploads = []
    for key, value in form.items():
        if not key.startswith("attachment_") or not isinstance(value, dict):
            continue
        slot = key[len("attachment_"):]
        if not slot.isdigit():
            continue
        try:
            content = base64.b64decode(value.get("content") or "", validate=True)
        except (binascii.Error, TypeError, ValueError):
            content = b""
        uploads.append(LegacyUpload(slot=int(slot), filename=_text(value.get("filename")) or "", content=content))
    return uploads


def parse_reply_request(event: Dict) -> ReplyRequest:
    """Build a ReplyRequest from an API Gateway HTTP API event.

    Raises MalformedRequestError when the body cannot be read as a reply form.
    """
    form = _parse_body(event)
    if not form and int(_headers(event).get("content-length") or 0) > 0:
        raise PayloadTooLargeError()

    attachments = form.get("attachments") or []
    if not isinstance(attachments, list):
        attachments = [attachments]

    try:
        return ReplyRequest(
            orig_track=_text(form.get("orig_track")),
            message=_text(form.get("message")),
            email=_text(form.get("e") or form.get("email")),
            reopen=_flag(form.get("reopen", "0")),
            use_legacy_attachments=_flag(form.get("use-legacy-attachments", "0")),
            attachments=[_text(a) for a in attachments],
            legacy_uploads=_legacy_uploads(form),
            client_ip=event.get("requestContext", {}).get("http", {}).get("sourceIp", "0.0.0.0"),
        )
    except ValidationError:
        raise MalformedRequestError()


def _session_cookie(session: ReplySession) -> str:
    return f"{SESSION_COOKIE}={session.session_id}; Path=/; HttpOnly; Secure; SameSite=Lax"


def lambda_handler(event, context):
    """Handle POST /reply_ticket; anything else is redirected to the entry page."""
    method = event.get("requestContext", {}).get("http", {}).get("method", "").upper()
    if method != "POST":
        return {"statusCode": 302, "headers": {"Location": _get_settings().entry_url}, "body": ""}

    correlation_id = str(uuid.uuid4())
    session = None
    try:
        session = ReplySession.load(_get_session_store(), _session_id(event))
        request = parse_reply_request(event)
        outcome = _get_reply_service().submit(request, session)
        response = {
            "statusCode": 200,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(
                {
                    "status": "success",
                    "message": outcome.message,
                    "trackid": outcome.trackid,
                    "reply_id": outcome.reply_id,
                    "ticket_status": outcome.status,
                    "attachments": outcome.attachment_refs,
                    "correlation_id": correlation_id,
                }
            ),
        }
    except AppError as exc:
        logger.info(
            "Reply rejected",
            extra={"correlation_id": correlation_id, "code": exc.code, "status_code": exc.status_code},
        )
        response = to_response(exc, correlation_id)
    except Exception:
        logger.exception("Reply handling failed", extra={"correlation_id": correlation_id})
        response = {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(
                {"message": "Internal error", "status": "error", "correlation_id": correlation_id}
            ),
        }

    if session is not None:
        try:
            session.save()
        except Exception:
            logger.exception("Session save failed", extra={"correlation_id": correlation_id})
        response["cookies"] = [_session_cookie(session)]
    return response
