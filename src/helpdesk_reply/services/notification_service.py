"""
Notification Fanout.

Runs after the reply has committed. Staff email and push are independent:
a failure in one never stops the other and never reaches the customer.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from helpdesk_reply.config import HelpdeskSettings
from helpdesk_reply.models.notification import NotificationPayload
from helpdesk_reply.services.push_service import PushNotifier
from helpdesk_reply.services.staff_email_service import StaffEmailNotifier
from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_EVENT = "new_reply_by_customer"
PUSH_EVENT = "reply_customer"


class FanoutReport(BaseModel):
    """What was delivered, for logs and tests."""

    emailed: list = Field(default_factory=list)
    pushed: list = Field(default_factory=list)
    email_failed: bool = False
    push_failed: bool = False


class NotificationFanout:
    """Dispatch a committed customer reply to staff email and push channels.

    ``push_notifier`` is optional; passing None is how a deployment without
    push credentials runs.
    """

    def __init__(
        self,
        settings: HelpdeskSettings,
        staff_notifier: Optional[StaffEmailNotifier] = None,
        push_notifier: Optional[PushNotifier] = None,
    ):
        self.settings = settings
        self.staff_notifier = staff_notifier
        self.push_notifier = push_notifier

    def dispatch(self, payload: NotificationPayload, raw_message: str) -> FanoutReport:
        report = FanoutReport()

        if self.staff_notifier is not None:
            try:
                if payload.owner:
                    report.emailed = self.staff_notifier.notify_assigned_staff(
                        payload, EMAIL_EVENT, "notify_reply_my"
                    )
                else:
                    report.emailed = self.staff_notifier.notify_staff(
                        payload, EMAIL_EVENT, "notify_reply_unassigned"
                    )
            except Exception:
                report.email_failed = True
                logger.exception("Staff notification failed", extra={"trackid": payload.trackid})

        if self.push_notifier is not None:
            try:
                report.pushed = self.push_notifier.send(
                    self.settings, PUSH_EVENT, payload, False, raw_message
                )
            except Exception:
                report.push_failed = True
                logger.exception("Push dispatch failed", extra={"trackid": payload.trackid})

        return report
