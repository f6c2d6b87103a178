"""Bookmark Input: validation and title resolution for the add intent.

Invariants:
    - A valid URL has a scheme and a host after stripping surrounding whitespace;
      the host is a DNS name (IDNA-encodable, [A-Za-z0-9.-] only) or a bracketed IPv6 literal
    - Effective title is the stripped title when non-empty, else the URL host
    - Effective title is therefore never empty
    - Pure: no IO, raises ValidationError only

Design Decisions:
    - urllib.parse over a URL library: absolute-URL check is all the add intent needs
    - Host-less URLs (mailto:, data:) rejected: they would leave no fallback title
"""

import ipaddress
import re
from urllib.parse import urlsplit

from app.core.domain_types import BookmarkDraft
from app.core.errors import ValidationError

MAX_URL_LENGTH = 2000
MAX_TITLE_LENGTH = 500

_HOSTNAME = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?\.?$")


def _is_valid_host(host: str, netloc: str) -> bool:
    if "[" in netloc:
        try:
            return ipaddress.ip_address(host).version == 6
        except ValueError:
            return False
    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return False
    return bool(_HOSTNAME.match(ascii_host)) and ".." not in ascii_host


def parse_host(url: str) -> str:
    """Return the lowercase host of an absolute URL or raise ValidationError."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
        parts.port  # raises ValueError on a non-numeric or out-of-range port
    except ValueError:
        raise ValidationError("Please enter a valid URL", field="url")
    if not parts.scheme or not host or not _is_valid_host(host, parts.netloc):
        raise ValidationError("Please enter a valid URL", field="url")
    return host


def resolve_title(title: str | None, url: str) -> str:
    """Stripped title if non-empty, else the URL's host."""
    stripped = (title or "").strip()
    if stripped:
        if len(stripped) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Title must be at most {MAX_TITLE_LENGTH} characters", field="title",
            )
        return stripped
    return parse_host(url)


def normalize_title(title: str | None) -> str:
    """Required-title variant used by rename: empty titles are rejected."""
    stripped = (title or "").strip()
    if not stripped:
        raise ValidationError("Title cannot be empty", field="title")
    if len(stripped) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be at most {MAX_TITLE_LENGTH} characters", field="title",
        )
    return stripped


def build_draft(url: str, title: str | None = None) -> BookmarkDraft:
    """Validate raw form input into an insert-ready draft."""
    url = (url or "").strip()
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(
            f"URL must be at most {MAX_URL_LENGTH} characters", field="url",
        )
    parse_host(url)
    return BookmarkDraft(url=url, title=resolve_title(title, url))
