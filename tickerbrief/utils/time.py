from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
import re

from tickerbrief.logging_config import logger


RELATIVE_TIME_PATTERN = re.compile(
    r'(\d+|an?|one)\s*(seconds?|secs?|minutes?|mins?|m|hours?|hrs?|h|days?|d|weeks?|w)\s+ago',
    re.IGNORECASE
)

RELATIVE_TIME_UNITS = {
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
    'd': timedelta(days=1),
    'w': timedelta(weeks=1),
}

# Absolute formats tried in order after RFC 2822 and ISO 8601
DATE_FORMATS = [
    "%b-%d-%y %I:%M%p",
    "%b-%d-%y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%b %d, %Y %I:%M %p",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_relative_time(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Convert a relative expression such as "5 minutes ago", "an hour ago" or
    "yesterday" into an absolute UTC datetime. Returns None if the text holds
    no relative expression.
    """
    if not text:
        return None

    now = ensure_utc(now or utc_now())
    lowered = text.strip().lower()

    if lowered in ("just now", "now", "moments ago"):
        return now
    if lowered.startswith("yesterday"):
        return now - timedelta(days=1)

    match = RELATIVE_TIME_PATTERN.search(lowered)
    if not match:
        return None

    amount, unit = match.groups()
    value = 1 if amount in ("a", "an", "one") else int(amount)
    return now - RELATIVE_TIME_UNITS[unit[0]] * value


def parse_date_str(date_str: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Parse a published date string into a UTC datetime.

    Relative expressions are resolved against `now`, then RFC 2822, ISO 8601
    and the known absolute formats are tried in sequence. Empty or
    unparseable input falls back to `now`.
    """
    now = ensure_utc(now or utc_now())
    if not date_str or not date_str.strip():
        return now

    date_str = date_str.strip()

    relative = parse_relative_time(date_str, now)
    if relative is not None:
        return relative

    try:
        # RFC 2822 format (common in feeds and HTTP headers)
        return ensure_utc(parsedate_to_datetime(date_str))
    except (TypeError, ValueError, IndexError):
        pass

    try:
        return ensure_utc(datetime.fromisoformat(date_str.replace('Z', '+00:00')))
    except ValueError:
        pass

    for date_format in DATE_FORMATS:
        try:
            return ensure_utc(datetime.strptime(date_str, date_format))
        except ValueError:
            continue

    logger.warning(f"Could not parse date '{date_str}', using current time")
    return now


def to_iso(dt: datetime) -> str:
    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')
