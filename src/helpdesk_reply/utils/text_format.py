"""Render customer plain text into the HTML stored with a reply."""

import re

_LINK_RE = re.compile(
    r"(?P<url>\b(?:https?|ftp)://[^\s<]+[^\s<.,;:!?)\]'\"])"
    r"|(?P<www>(?<![/\w.])www\.[^\s<]+[^\s<.,;:!?)\]'\"])"
    r"|(?P<mail>(?<![\w.:/])[\w.+-]+@[\w-]+(?:\.[\w-]+)+)",
    re.IGNORECASE,
)


def _anchor(match: "re.Match") -> str:
    url, www, mail = match.group("url", "www", "mail")
    if url:
        return f'<a href="{url}" target="_blank" rel="noopener">{url}</a>'
    if www:
        return f'<a href="http://{www}" target="_blank" rel="noopener">{www}</a>'
    return f'<a href="mailto:{mail}">{mail}</a>'


def make_url(text: str) -> str:
    """Turn bare URLs and email addresses into anchors.

    One left-to-right pass, so an address inside a URL stays part of that
    link. The input is expected to be HTML-escaped already, so ``&amp;``
    inside a link is kept as-is.
    """
    return _LINK_RE.sub(_anchor, text)


def nl2br(text: str) -> str:
    return re.sub(r"\r\n|\r|\n", lambda m: "<br />" + m.group(0), text)


def render_message_html(text: str) -> str:
    """Links first, then line breaks."""
    return nl2br(make_url(text))
