"""Staff and lockout models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class StaffUser(BaseModel):
    """Staff member as needed for notification routing."""

    id: int
    name: str
    email: str
    isadmin: bool = False
    categories: List[int] = []
    notify_reply_my: bool = True
    notify_reply_unassigned: bool = True
    active: bool = True

    def can_view_category(self, category: int) -> bool:
        return self.isadmin or category in self.categories


class LoginAttempt(BaseModel):
    """Per-IP attempt counter used for temporary lockouts."""

    ip: str
    number: int
    last_attempt: Optional[datetime] = None
