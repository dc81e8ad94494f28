"""
Display helpers for SafePath results.

Relative time strings, the breaking-news predicate and display-name
normalisation. All functions are pure; "now" can be injected.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

BREAKING_WINDOW = timedelta(hours=24)

_NON_DIGIT = re.compile(r"\D")


def display_name(region_id: str) -> str:
    """'akwa-ibom' -> 'Akwa Ibom'."""
    return " ".join(w[:1].upper() + w[1:] for w in region_id.split("-") if w)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_seen_date(seen_date: Optional[str]) -> Optional[datetime]:
    """
    Parses a GDELT compact timestamp into an aware UTC datetime.

    Accepts 'YYYYMMDDHHMMSS', 'YYYYMMDDTHHMMSSZ' and date-only 'YYYYMMDD'.
    Returns None for anything else.
    """
    if not seen_date:
        return None
    digits = _NON_DIGIT.sub("", seen_date)
    try:
        if len(digits) >= 14:
            parsed = datetime.strptime(digits[:14], "%Y%m%d%H%M%S")
        elif len(digits) >= 8:
            parsed = datetime.strptime(digits[:8], "%Y%m%d")
        else:
            return None
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def seen_date_sort_key(seen_date: Optional[str]) -> int:
    """Numeric recency key; unparseable dates sort oldest."""
    digits = _NON_DIGIT.sub("", seen_date or "")[:14]
    return int(digits.ljust(14, "0")) if digits else 0


def is_breaking_news(seen_date: Optional[str], now: Optional[datetime] = None) -> bool:
    """True if the article was seen within the last 24 hours."""
    seen = parse_seen_date(seen_date)
    if seen is None:
        return False
    age = (now or _utcnow()) - seen
    return timedelta(0) <= age <= BREAKING_WINDOW


def _ago(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''} ago"


def _days_ago(days: int) -> str:
    if days < 7:
        return _ago(days, "day")
    if days < 30:
        return _ago(days // 7, "week")
    if days < 365:
        return _ago(days // 30, "month")
    return _ago(days // 365, "year")


def format_time_ago(when: Union[str, datetime, None], now: Optional[datetime] = None) -> str:
    """
    Compact relative time for "last updated" labels.

    'Just now', 'Xm ago', 'Xh ago', then 'N days/weeks/months/years ago'.
    """
    if isinstance(when, str):
        try:
            when = datetime.fromisoformat(when.replace("Z", "+00:00"))
        except ValueError:
            return "Unknown"
    if when is None:
        return "Unknown"
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    minutes = int(((now or _utcnow()) - when).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return _days_ago(hours // 24)


def format_seen_date(seen_date: Optional[str], now: Optional[datetime] = None) -> str:
    """Calendar-day relative label for an article date."""
    seen = parse_seen_date(seen_date)
    if seen is None:
        return "Unknown date"
    days = ((now or _utcnow()).date() - seen.date()).days
    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    return _days_ago(days)
