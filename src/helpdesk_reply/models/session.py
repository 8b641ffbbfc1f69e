"""Explicit session object for the reply flow."""

from __future__ import annotations

import secrets
from typing import Any, Dict, Optional

LAST_REPLY_TIMESTAMP = "last_reply_timestamp"
TRACKING_ID = "t_track"
CUSTOMER_EMAIL = "t_email"
TICKET_MESSAGE = "ticket_message"
STAGED_ATTACHMENTS = "r_attachments"
FORCE_FORM_TOP = "force_form_top"


class ReplySession:
    """Session data plus an optional backing store.

    Without a store the session is purely in-memory, which is what unit tests
    and one-off scripts use.
    """

    def __init__(self, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None, store=None):
        self.session_id = session_id or secrets.token_hex(16)
        self.data: Dict[str, Any] = dict(data or {})
        self.store = store
        self.cleared = False

    @classmethod
    def load(cls, store, session_id: Optional[str]) -> "ReplySession":
        if not session_id:
            return cls(store=store)
        return cls(session_id=session_id, data=store.load(session_id), store=store)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def discard(self, key: str) -> None:
        self.data.pop(key, None)

    def clear(self) -> None:
        self.data.clear()
        self.cleared = True

    def claim_reply_slot(self, now: int, min_interval: int) -> bool:
        """Atomically record a reply timestamp unless one is too recent."""
        if self.store is not None:
            allowed = self.store.claim_reply_slot(self.session_id, now, min_interval)
        else:
            last = self.data.get(LAST_REPLY_TIMESTAMP)
            allowed = last is None or (now - int(last)) >= min_interval
        if allowed:
            self.data[LAST_REPLY_TIMESTAMP] = now
        return allowed

    def save(self) -> None:
        if self.store is None:
            return
        if self.cleared and not self.data:
            self.store.delete(self.session_id)
        else:
            self.store.save(self.session_id, self.data)
