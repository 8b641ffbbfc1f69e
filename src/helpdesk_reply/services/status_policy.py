"""Which ticket statuses a customer reply is allowed to change."""

from typing import FrozenSet

from helpdesk_reply.models.ticket import TicketStatus


class TicketStatusPolicy:
    """Custom statuses can be marked as not changeable by customers."""

    def __init__(self, customer_locked_statuses: FrozenSet[int] = frozenset()):
        self.customer_locked_statuses = frozenset(customer_locked_statuses)

    def can_customer_change_status(self, status: int) -> bool:
        return status not in self.customer_locked_statuses

    def status_after_customer_reply(self, status: int) -> int:
        """New stays New until staff replies; anything else waits for staff."""
        if not self.can_customer_change_status(status):
            return status
        return int(TicketStatus.WAITING_REPLY) if status else int(TicketStatus.NEW)
