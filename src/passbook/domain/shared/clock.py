"""UTC clock for statement lookback windows and date normalization.

Every statement date is compared in UTC. Windows such as "the current year
plus two before it" are counted from the UTC calendar date, never the
local one, so the same session lists the same years on any host.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def today_utc() -> date:
    """Calendar date in UTC that lookback windows are counted from."""
    return utc_now().date()


def as_utc_aware(value: datetime) -> datetime:
    """Pin a naive bank timestamp to UTC; an explicit offset is kept as sent."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def statement_years(lookback_years: int, today: date | None = None) -> list[int]:
    """Calendar years to list, newest first.

    The current UTC year comes first, followed by ``lookback_years``
    earlier years. A lookback of zero lists the current year only.
    """
    current = (today or today_utc()).year
    return list(range(current, current - max(lookback_years, 0) - 1, -1))
