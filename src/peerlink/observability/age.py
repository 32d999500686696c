"""Node age derived from the earliest block time."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from peerlink.logging import get_logger

log = get_logger(__name__)

# RFC3339 with up to nanosecond fractions; datetime only keeps microseconds.
_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)

UNKNOWN_AGE = -1


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp into an aware datetime; ValueError otherwise."""
    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise ValueError(f"Not an RFC3339 timestamp: {value!r}")
    parsed = datetime.fromisoformat(match.group("base"))
    frac = match.group("frac")
    if frac:
        parsed = parsed.replace(microsecond=int(frac[:6].ljust(6, "0")))
    tz = match.group("tz")
    if tz == "Z":
        return parsed.replace(tzinfo=timezone.utc)
    sign = 1 if tz[0] == "+" else -1
    hours, minutes = int(tz[1:3]), int(tz[4:6])
    return parsed.replace(tzinfo=timezone(sign * timedelta(hours=hours, minutes=minutes)))


def days_running(timestamp: str, now: datetime | None = None) -> int:
    """Whole days between ``timestamp`` and ``now``; -1 when unparsable."""
    try:
        started = parse_rfc3339(timestamp)
    except ValueError:
        log.error("unparsable_block_time", timestamp=timestamp)
        return UNKNOWN_AGE
    now = now or datetime.now(timezone.utc)
    return int((now - started).total_seconds() / 86400)
