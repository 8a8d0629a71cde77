"""Statement date normalization.

Banks report statement dates in many shapes. Everything is converted into a
timezone-aware datetime so statements from different banks compare and
sort the same way. Naive inputs are interpreted as UTC.

Accepted shapes:
- ISO 8601 with or without offset (``2025-09-18T00:00:00.000+0000``)
- ``YYYY-MM-DD`` and slash-delimited ``YYYY/MM/DD``
- space-delimited timestamps (``2025-08-01 00:00:00Z``)
- display strings (``Sep 18, 2025`` / ``September 18, 2025``)
- explicit year + month pairs via ``month_end``
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timezone

from passbook.domain.shared.clock import as_utc_aware

_SLASH_DATE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})")
_SPACE_TIMESTAMP = re.compile(r"^(\d{4}-\d{2}-\d{2}) (\d{2}:\d{2})")
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")

_DISPLAY_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%m/%d/%Y",
)


def parse_statement_date(value: str | None) -> datetime | None:
    """Parse a bank date string into a timezone-aware datetime.

    Returns None for missing or unparseable input; callers drop such
    records instead of sorting them arbitrarily.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    slash = _SLASH_DATE.match(text)
    if slash:
        year, month, day = (int(part) for part in slash.groups())
        text = f"{year:04d}-{month:02d}-{day:02d}" + text[slash.end() :]

    text = _SPACE_TIMESTAMP.sub(r"\1T\2", text, count=1)

    if "T" in text:
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _COMPACT_OFFSET.sub(r"\1:\2", text)

    try:
        return as_utc_aware(datetime.fromisoformat(text))
    except ValueError:
        pass

    normalized = text.replace("Sept ", "Sep ")
    for fmt in _DISPLAY_FORMATS:
        try:
            return as_utc_aware(datetime.strptime(normalized, fmt))
        except ValueError:
            continue
    return None


def month_end(year: int, month: int) -> datetime:
    """Return midnight UTC of the last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, tzinfo=timezone.utc)
