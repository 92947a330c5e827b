# utils/helpers.py
from datetime import datetime, time, timezone
import logging
from typing import Union, Optional

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def start_of_today_iso(now: Optional[datetime] = None) -> str:
    """Local midnight of the current day as an aware ISO timestamp (for >= filters)."""
    now = now or datetime.now().astimezone()
    midnight = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    return midnight.isoformat()


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse backend timestamps ('2025-01-31T10:00:00+00:00', trailing 'Z', or
    datetime instances). Naive values are taken as UTC. Returns None on failure.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            _log.debug("parse_timestamp: unparseable %r", value)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def fmt_qty(v: NumberLike) -> str:
    """Quantities display without trailing zeros ('5', '2.5')."""
    try:
        return f"{float(v):g}"
    except (TypeError, ValueError) as e:
        _log.debug("fmt_qty: failed to parse %r as float: %s", v, e)
        return str(v)


def short_id(value: Optional[str], length: int = 8) -> str:
    return (value or "")[:length]
