import re
from datetime import datetime, timezone
from typing import Optional

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def _six_digit_fraction(m: re.Match) -> str:
    return f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}"


def parse_created(value: Optional[str]) -> Optional[datetime]:
    """Parse a feed timestamp into an aware UTC datetime, or None if unusable.

    Accepts ISO 8601 dates and datetimes, with or without a trailing "Z" and
    with any number of fractional-second digits. Naive values are taken as UTC.
    """
    if not value:
        return None
    v = value.strip()
    if v.endswith(("Z", "z")):
        v = v[:-1] + "+00:00"
    v = _FRACTION.sub(_six_digit_fraction, v, count=1)
    try:
        dt = datetime.fromisoformat(v)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_now(now: Optional[datetime] = None) -> str:
    """Millisecond ISO timestamp in UTC with a "Z" suffix, e.g. 2024-01-01T12:00:00.000Z."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
