"""
Flood Guard.

Three independent checks run by the reply workflow:

- a per-session throttle between two replies,
- the active IP lockout written by login and reply abuse detection,
- a scan of recent replies that bans an IP posting too many customer
  replies in a row.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Optional

from helpdesk_reply.config import HelpdeskSettings
from helpdesk_reply.models.session import ReplySession
from helpdesk_reply.repositories.ticket_repo import TicketRepository
from helpdesk_reply.utils.clock import utcnow
from helpdesk_reply.utils.error_handling import FloodError, IpBannedError, SequentialAbuseError
from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)


class FloodGuard:
    """Rate limiting and abuse lockout for customer replies."""

    def __init__(
        self,
        repository: TicketRepository,
        settings: HelpdeskSettings,
        clock: Callable = utcnow,
    ):
        self.repository = repository
        self.settings = settings
        self.clock = clock

    def check_and_record_reply_flood(
        self,
        session: ReplySession,
        min_interval_seconds: Optional[int] = None,
        now: Optional[int] = None,
    ) -> None:
        """Raise FloodError when the session replied less than the interval ago."""
        interval = self.settings.flood if min_interval_seconds is None else min_interval_seconds
        if not interval:
            return
        now = int(time.time()) if now is None else now
        if not session.claim_reply_slot(now, interval):
            logger.info("Reply flood rejected", extra={"session_id": session.session_id})
            raise FloodError()

    def check_ip_ban(self, ip: str, session: Optional[ReplySession] = None) -> None:
        """Raise IpBannedError while the IP is locked out."""
        attempt = self.repository.get_login_attempt(ip)
        if attempt is None or attempt.last_attempt is None:
            return
        ban_ends = attempt.last_attempt + timedelta(minutes=self.settings.attempt_banmin)
        if ban_ends > self.clock() and attempt.number >= self.settings.attempt_limit:
            if session is not None:
                session.clear()
            logger.warning("Banned IP tried to reply", extra={"ip": ip, "attempts": attempt.number})
            raise IpBannedError(self.settings.attempt_banmin)

    def count_sequential_customer_replies(self, ticket_id: int, window_minutes: int) -> int:
        """Length of the trailing run of customer replies inside the window."""
        since = self.clock() - timedelta(minutes=window_minutes)
        streak = 0
        for reply in self.repository.replies_since(ticket_id, since):
            streak = streak + 1 if reply.by_customer else 0
        return streak

    def check_sequential_abuse(
        self,
        ticket_id: int,
        ip: str,
        window_minutes: Optional[int] = None,
        max_sequential: Optional[int] = None,
    ) -> None:
        """Ban the IP and raise when the customer streak exceeds the limit.

        The ban row is committed before the exception propagates.
        """
        window = window_minutes or self.settings.sequential_reply_window_minutes
        limit = self.settings.sequential_reply_limit if max_sequential is None else max_sequential

        streak = self.count_sequential_customer_replies(ticket_id, window)
        if streak <= limit:
            return

        self.repository.insert_ban_record(ip, self.settings.attempt_limit + 1, self.clock())
        logger.warning(
            "IP banned for sequential replies",
            extra={"ip": ip, "ticket_id": ticket_id, "streak": streak},
        )
        raise SequentialAbuseError(self.settings.attempt_banmin)
