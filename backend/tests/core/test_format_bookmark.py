"""Presentation formatting — relative ages and display names."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.domain_types import Identity, OwnerId
from app.core.format_bookmark import display_name, format_relative_age

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("delta,expected", [
    (timedelta(seconds=10), "Just now"),
    (timedelta(minutes=5), "5m ago"),
    (timedelta(minutes=59), "59m ago"),
    (timedelta(hours=3), "3h ago"),
    (timedelta(days=2), "2d ago"),
    (timedelta(days=6, hours=23), "6d ago"),
])
def test_relative_age_buckets(delta, expected):
    assert format_relative_age(NOW - delta, now=NOW) == expected


def test_older_than_a_week_same_year_shows_month_day():
    assert format_relative_age(datetime(2026, 3, 4, tzinfo=timezone.utc), now=NOW) == "Mar 4"


def test_previous_year_includes_year():
    created = datetime(2025, 12, 25, tzinfo=timezone.utc)
    assert format_relative_age(created, now=NOW) == "Dec 25, 2025"


def test_naive_datetime_treated_as_utc():
    assert format_relative_age(datetime(2026, 6, 15, 11, 0), now=NOW) == "1h ago"


def test_display_name_falls_back_to_user():
    assert display_name(None) == "User"
    assert display_name(Identity(id=OwnerId("x"))) == "User"
    assert display_name(Identity(id=OwnerId("x"), display_name="Ada")) == "Ada"
