"""Date and time helpers shared by the payment services."""

from datetime import date, datetime, timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30), name="IST")


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_ist() -> date:
    return datetime.now(IST).date()


def financial_year(on: date) -> str:
    """Indian financial year label (April start), e.g. ``2025-26``."""
    start = on.year if on.month >= 4 else on.year - 1
    return f"{start}-{str(start + 1)[-2:]}"


def ist_day_bounds(day: date) -> tuple:
    """Unix timestamps of the start and end of ``day`` in IST."""
    start = datetime(day.year, day.month, day.day, tzinfo=IST)
    end = start + timedelta(days=1) - timedelta(seconds=1)
    return int(start.timestamp()), int(end.timestamp())
