"""Size, date and counter parsers for loosely formatted source fields.

None of these raise: an unparseable value degrades to its zero value.
"""

import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

# "1.5 GiB", "700 MB", "1,024.5 MiB", "0 B"
SIZE_PATTERN = re.compile(r"([\d.,]+)\s*([KMGT]?)(i?)B", re.IGNORECASE)

UNIT_EXPONENTS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4}

COUNT_PATTERN = re.compile(r"\s*(-?[\d,]+)")


def parse_size(size_str: str) -> int:
    """Convert a formatted size string to a byte count.

    Binary suffixes (KiB, MiB, GiB, TiB) scale by powers of 1024, decimal
    suffixes (KB, MB, GB, TB) and bare B by powers of 1000. Feeds mix both
    conventions, so the suffix decides the base.

    Args:
        size_str: Size as displayed by the source (e.g. "1.5 GiB").

    Returns:
        Size in bytes, or 0 if the string does not contain a size.
    """
    if not size_str:
        return 0

    match = SIZE_PATTERN.search(size_str)
    if not match:
        return 0

    try:
        number = float(match.group(1).replace(",", ""))
    except ValueError:
        return 0

    exponent = UNIT_EXPONENTS[match.group(2).upper()]
    base = 1024 if match.group(3) else 1000
    size = number * base**exponent
    if not math.isfinite(size):
        return 0
    return round(size)


def parse_date(date_str: str) -> str:
    """Parse a free-form date to a UTC ISO-8601 timestamp.

    Accepts RFC 2822 dates (RSS ``pubDate``) and ISO-8601 dates (curated
    records). Naive dates are assumed to be UTC.

    Args:
        date_str: Raw date string.

    Returns:
        Timestamp like "2024-09-15T12:00:00Z", or "" if unparseable.
    """
    date_str = (date_str or "").strip()
    if not date_str:
        return ""

    try:
        parsed = parsedate_to_datetime(date_str)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        except ValueError:
            return ""

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    # Dates at the edge of the calendar cannot be shifted to UTC
    try:
        utc = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return ""

    return utc.isoformat().replace("+00:00", "Z")


def parse_count(value: str, default: int = 0) -> int:
    """Parse the leading integer of a statistic field ("1,204" -> 1204).

    Args:
        value: Raw counter string.
        default: Value returned when no integer is present.

    Returns:
        Parsed integer or ``default``.
    """
    match = COUNT_PATTERN.match(value or "")
    if not match:
        return default

    try:
        return int(match.group(1).replace(",", ""))
    except ValueError:
        return default
