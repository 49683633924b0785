"""Timestamp helpers.

Every timestamp column holds a naive UTC datetime. Values coming from the API
either carry an explicit offset, which is honoured, or are naive wall-clock
times in the clinic's configured offset (``CLINIC_UTC_OFFSET``).
"""

import re
from datetime import date, datetime, timedelta, timezone

from ..errors import ValidationError

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def parse_utc_offset(offset: str) -> timezone:
    """Turn "+07:00" / "-0530" / "Z" into a fixed ``timezone``."""
    if not offset or offset.upper() == "Z":
        return timezone.utc
    match = _OFFSET_RE.match(offset.strip())
    if not match:
        raise ValueError(f"Invalid UTC offset: {offset!r}")
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(value, clinic_offset: str = "+00:00"):
    """Normalize an API timestamp to naive UTC. Empty values become ``None``."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=parse_utc_offset(clinic_offset))
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)


def to_iso(value):
    """Serialize a stored (naive UTC) datetime with an explicit offset."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_date(value, field="date"):
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


def day_windows(now=None):
    """Return (yesterday_start, today_start, today_end) at UTC midnight."""
    now = now or utcnow()
    today_start = datetime(now.year, now.month, now.day)
    return (
        today_start - timedelta(days=1),
        today_start,
        today_start + timedelta(days=1),
    )
