"""Wall-clock <-> canonical time conversion.

A canonical instant is a float of seconds since the Unix epoch, the same
value ``time.time()`` returns. Local instants are naive ``datetime`` objects
holding what a wall clock in the user's zone would read.

Daylight-saving edges are resolved deterministically:

* a local time inside a spring-forward gap maps to the transition instant
  (the first instant that exists after the gap);
* a local time inside a fall-back overlap maps to the earlier of its two
  canonical instants.
"""
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidZoneRule

SECONDS_PER_DAY = 86400
MAX_UTC_OFFSET = timedelta(hours=24)

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


@dataclass(frozen=True)
class ZoneRule:
    utc_offset: timedelta | None = None
    name: str | None = None

    def __post_init__(self):
        if (self.utc_offset is None) == (self.name is None):
            raise InvalidZoneRule("zone rule needs exactly one of 'utc_offset' or 'name'")
        if self.utc_offset is not None:
            if not isinstance(self.utc_offset, timedelta):
                raise InvalidZoneRule(f"utc_offset must be a timedelta, got {self.utc_offset!r}")
            if not -MAX_UTC_OFFSET < self.utc_offset < MAX_UTC_OFFSET:
                raise InvalidZoneRule(f"utc_offset {self.utc_offset} is outside +/-24h")
            return
        if not isinstance(self.name, str) or not self.name:
            raise InvalidZoneRule(f"zone name must be a non-empty string, got {self.name!r}")
        try:
            ZoneInfo(self.name)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise InvalidZoneRule(f"unknown time zone {self.name!r}") from e

    @classmethod
    def fixed(cls, hours=0, minutes=0):
        return cls(utc_offset=timedelta(hours=hours, minutes=minutes))

    @classmethod
    def named(cls, name: str):
        return cls(name=name)

    @classmethod
    def utc(cls):
        return cls(utc_offset=timedelta(0))

    @classmethod
    def parse(cls, data):
        """Build a rule from its config mapping: ``{"name": ...}`` or ``{"utc_offset": "+05:30"}``."""
        if not isinstance(data, dict):
            raise InvalidZoneRule(f"zone must be a mapping, got {type(data).__name__}")
        unknown = set(data) - {"name", "utc_offset"}
        if unknown:
            raise InvalidZoneRule(f"unknown zone keys: {', '.join(sorted(unknown))}")
        offset = data.get("utc_offset")
        return cls(utc_offset=None if offset is None else parse_offset(offset), name=data.get("name"))

    @property
    def tzinfo(self):
        if self.utc_offset is not None:
            return timezone(self.utc_offset)
        return ZoneInfo(self.name)

    @property
    def has_transitions(self):
        return self.name is not None

    def to_dict(self):
        if self.name is not None:
            return {"name": self.name}
        return {"utc_offset": format_offset(self.utc_offset)}

    def __str__(self):
        return self.name if self.name is not None else f"UTC{format_offset(self.utc_offset)}"


def parse_offset(value) -> timedelta:
    """Parse ``"+05:30"``, ``"-0800"``, ``"UTC+2"`` or a number of minutes."""
    if isinstance(value, bool):
        raise InvalidZoneRule(f"bad utc_offset {value!r}")
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            raise InvalidZoneRule(f"bad utc_offset {value!r}")
        return timedelta(minutes=value)
    m = _OFFSET_RE.match(str(value).strip())
    if not m:
        raise InvalidZoneRule(f"bad utc_offset {value!r}, expected something like '+05:30'")
    hours, minutes = int(m.group(2)), int(m.group(3) or 0)
    if minutes >= 60:
        raise InvalidZoneRule(f"bad utc_offset {value!r}, minutes must be below 60")
    sign = -1 if m.group(1) == "-" else 1
    return sign * timedelta(hours=hours, minutes=minutes)


def format_offset(offset: timedelta) -> str:
    total = int(offset.total_seconds()) // 60
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def _offset_at(instant, tz):
    return datetime.fromtimestamp(instant, tz).utcoffset()


def _exists(aware: datetime) -> bool:
    back = aware.astimezone(timezone.utc).astimezone(aware.tzinfo)
    return back.replace(tzinfo=None) == aware.replace(tzinfo=None)


def _transition_instant(a: float, b: float, tz) -> float:
    # Offsets only change on whole seconds, so bisect on integers.
    lo, hi = math.floor(min(a, b)), math.ceil(max(a, b))
    before = _offset_at(lo, tz)
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if _offset_at(mid, tz) == before:
            lo = mid
        else:
            hi = mid
    return float(hi)


def offset_segments(start: float, end: float, rule: ZoneRule):
    """Split ``[start, end)`` into ``(a, b, offset_seconds)`` pieces of constant UTC offset."""
    if not rule.has_transitions:
        return [(start, end, rule.utc_offset.total_seconds())]
    tz = rule.tzinfo
    segments = []
    a, offset = start, _offset_at(start, tz)
    # Zones change offset at most once in half a day.
    cursor = start
    while cursor < end:
        step = min(cursor + SECONDS_PER_DAY / 2, end)
        if _offset_at(step, tz) != offset:
            change = max(a, _transition_instant(cursor, step, tz))
            segments.append((a, change, offset.total_seconds()))
            a, offset = change, _offset_at(change, tz)
        cursor = step
    segments.append((a, end, offset.total_seconds()))
    return [s for s in segments if s[1] > s[0]]


def to_canonical(local: datetime, rule: ZoneRule) -> float:
    if local.tzinfo is not None:
        return local.timestamp()
    tz = rule.tzinfo
    if not rule.has_transitions:
        return local.replace(tzinfo=tz).timestamp()
    first = local.replace(tzinfo=tz, fold=0)
    second = local.replace(tzinfo=tz, fold=1)
    if first.utcoffset() == second.utcoffset():
        return first.timestamp()
    if _exists(first):
        return min(first.timestamp(), second.timestamp())
    return _transition_instant(first.timestamp(), second.timestamp(), tz)


def to_local(instant: float, rule: ZoneRule) -> datetime:
    return datetime.fromtimestamp(instant, rule.tzinfo).replace(tzinfo=None)


def time_of_day(instant: float, rule: ZoneRule) -> float:
    """Seconds elapsed since local midnight at ``instant``."""
    local = to_local(instant, rule)
    return local.hour * 3600 + local.minute * 60 + local.second + local.microsecond / 1e6


def local_date(instant: float, rule: ZoneRule) -> date:
    return to_local(instant, rule).date()


def local_instant(day: date, seconds: float, rule: ZoneRule) -> float:
    """Canonical instant of ``seconds`` past local midnight on ``day``; 86400 is the next midnight."""
    return to_canonical(datetime.combine(day, time()) + timedelta(seconds=seconds), rule)
