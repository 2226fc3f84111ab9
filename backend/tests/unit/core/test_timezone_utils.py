from datetime import date, datetime, time, timedelta, timezone

from venuebook.core.timezone_utils import (
    ensure_utc,
    get_venue_today,
    hours_until,
    utc_to_venue,
    venue_datetime_to_utc,
)


def test_venue_local_start_converts_to_utc() -> None:
    # Jakarta has no DST; always UTC+7
    assert venue_datetime_to_utc(date(2030, 1, 15), time(10, 0)) == datetime(
        2030, 1, 15, 3, 0, tzinfo=timezone.utc
    )


def test_venue_today_rolls_over_before_utc() -> None:
    late_utc = datetime(2030, 1, 15, 18, 30, tzinfo=timezone.utc)

    assert get_venue_today(late_utc) == date(2030, 1, 16)
    assert utc_to_venue(late_utc).hour == 1


def test_naive_values_are_treated_as_utc() -> None:
    naive = datetime(2030, 1, 15, 3, 0)

    assert ensure_utc(naive) == datetime(2030, 1, 15, 3, 0, tzinfo=timezone.utc)


def test_hours_until() -> None:
    now = datetime(2030, 1, 15, 0, 0, tzinfo=timezone.utc)

    assert hours_until(now + timedelta(hours=48), now=now) == 48
    assert hours_until(now - timedelta(hours=2), now=now) == -2
