"""Utility helpers for the Netflix Rows service."""

from __future__ import annotations

import calendar
import hashlib
import re
from datetime import date, datetime, timedelta, timezone


FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def subtract_days(moment: datetime, days: int) -> datetime:
    return moment - timedelta(days=max(days, 0))


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month."""

    months = max(months, 0)
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def parse_timestamp(value: object) -> datetime | None:
    """Parse a Jellyfin ISO timestamp into an aware UTC datetime."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        # Jellyfin emits 7 fractional digits; trim to microseconds.
        text = FRACTION_RE.sub(r".\1", text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def derive_seed(*parts: object) -> int:
    """Return a deterministic 32-bit seed for the given parts."""

    material = "|".join(str(part) for part in parts)
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return int(digest[:8], 16)


def daily_seed(user_id: str, today: date) -> int:
    """Seed that stays stable for one user for one UTC day."""

    return derive_seed(user_id, today.isoformat())
