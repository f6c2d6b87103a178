"""Presentation formatting: relative age labels and identity display names.

Invariants:
    - Ages under a minute render as "Just now"; under an hour "Nm ago";
      under a day "Nh ago"; under a week "Nd ago"
    - Older dates render as "Mon D", plus ", YYYY" when the year differs from now
    - Naive datetimes are treated as UTC
"""

from datetime import datetime, timezone

from app.core.domain_types import Identity

DEFAULT_DISPLAY_NAME = "User"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_relative_age(created_at: datetime, now: datetime | None = None) -> str:
    created_at = _as_utc(created_at)
    now = _as_utc(now or datetime.now(timezone.utc))
    seconds = (now - created_at).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"

    label = f"{created_at.strftime('%b')} {created_at.day}"
    if created_at.year != now.year:
        label += f", {created_at.year}"
    return label


def display_name(identity: Identity | None) -> str:
    if identity is None or not identity.display_name:
        return DEFAULT_DISPLAY_NAME
    return identity.display_name
