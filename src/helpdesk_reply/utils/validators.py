"""Input cleaning helpers for form fields."""

import html
import re
from typing import Optional

_TRACKID_STRIP = re.compile(r"[^A-Z0-9\-]")
_EMAIL_RE = re.compile(r"^[^@\s,;]+@[^@\s,;]+\.[^@\s,;]+$")


def clean_tracking_id(value: Optional[str]) -> Optional[str]:
    """Uppercase and strip everything outside [A-Z0-9-]; None when nothing is left."""
    if not value:
        return None
    cleaned = _TRACKID_STRIP.sub("", str(value).upper())
    return cleaned or None


def clean_input(value: Optional[str]) -> str:
    """Trim and HTML-escape free text posted by a customer."""
    if value is None:
        return ""
    return html.escape(str(value).strip(), quote=True)


def clean_email(value: Optional[str]) -> Optional[str]:
    """Normalize an email address, None when it does not look like one."""
    if not value:
        return None
    email = str(value).strip().lower()
    return email if _EMAIL_RE.match(email) else None


def email_matches(customer_email: Optional[str], ticket_emails: str) -> bool:
    """Ticket rows may hold several comma separated addresses."""
    if not customer_email:
        return False
    candidates = {e.strip().lower() for e in (ticket_emails or "").split(",") if e.strip()}
    return customer_email.strip().lower() in candidates
