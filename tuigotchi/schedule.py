"""Recurring daily windows during which a need can be looked after."""
import math
from bisect import bisect_right
from dataclasses import dataclass
from datetime import timedelta

from .errors import InvalidWindow
from .timezones import SECONDS_PER_DAY, ZoneRule, local_date, local_instant, offset_segments

# Windows leaving a gap in every day never chain into an occurrence this long.
SESSION_HORIZON = 2 * SECONDS_PER_DAY


@dataclass(frozen=True)
class ScheduleWindow:
    start: float
    duration: float

    def __post_init__(self):
        for field, value in (("start", self.start), ("duration", self.duration)):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise InvalidWindow(f"window {field} must be a number of seconds, got {value!r}")
        if not 0 <= self.start < SECONDS_PER_DAY:
            raise InvalidWindow(f"window start {self.start!r}s is outside one day")
        if self.duration <= 0:
            raise InvalidWindow(f"window duration must be positive, got {self.duration!r}s")
        if self.duration >= SECONDS_PER_DAY:
            raise InvalidWindow(f"window duration {self.duration!r}s must be shorter than a day")

    @property
    def end(self):
        return self.start + self.duration

    def intervals(self):
        """The window as intervals of one local day; a window running past midnight is split."""
        if self.end <= SECONDS_PER_DAY:
            return [(float(self.start), float(self.end))]
        return [(float(self.start), float(SECONDS_PER_DAY)), (0.0, float(self.end - SECONDS_PER_DAY))]


def merge_intervals(intervals):
    merged = []
    for lo, hi in sorted(intervals):
        if merged and lo <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], hi))
        else:
            merged.append((lo, hi))
    return merged


def total_length(intervals):
    return sum(hi - lo for lo, hi in intervals)


class Schedule:
    """Per-need sorted, disjoint ``[start, end)`` intervals of a local day, in seconds."""

    def __init__(self):
        self._intervals = {}

    def add_window(self, need: str, window: ScheduleWindow):
        self._intervals[need] = merge_intervals(self._intervals.get(need, []) + window.intervals())

    def windows(self, need: str):
        return tuple(self._intervals.get(need, ()))

    def _interval_at(self, need, tod):
        intervals = self._intervals.get(need, ())
        i = bisect_right(intervals, (tod, math.inf)) - 1
        if i >= 0 and tod < intervals[i][1]:
            return intervals[i]
        return None

    def _starts(self, need):
        intervals = self._intervals.get(need, ())
        starts = [lo for lo, _ in intervals]
        # 00:00 is not a start when it only continues a window from the evening before
        if intervals and intervals[0][0] == 0 and intervals[-1][1] == SECONDS_PER_DAY:
            starts = starts[1:]
        return starts

    def is_in_window(self, need: str, tod: float) -> bool:
        return self._interval_at(need, tod % SECONDS_PER_DAY) is not None

    def next_window_start(self, need: str, tod: float):
        """First window start at or after ``tod``, wrapping to the next day; None if there is none."""
        starts = self._starts(need)
        if not starts:
            return None
        tod = tod % SECONDS_PER_DAY
        for start in starts:
            if start >= tod:
                return start
        return starts[0]

    def window_end(self, need: str, instant: float, rule: ZoneRule):
        """Canonical end of the window occurrence containing ``instant``, or None outside any window.

        A need whose windows cover the whole day ends its occurrence at the
        next local midnight.
        """
        spans = self.active_intervals(need, instant, instant + SESSION_HORIZON, rule)
        if not spans or spans[0][0] != instant:
            return None
        end = spans[0][1]
        if end >= instant + SESSION_HORIZON:
            return local_instant(local_date(instant, rule) + timedelta(days=1), 0, rule)
        return end

    def active_intervals(self, need: str, start: float, end: float, rule: ZoneRule):
        """Canonical sub-intervals of ``[start, end)`` whose local time of day falls in a window.

        Each piece of constant UTC offset maps linearly onto local time, so a
        repeated hour after the clocks go back is covered on both passes and
        a skipped hour is never covered.
        """
        intervals = self._intervals.get(need)
        if not intervals or end <= start:
            return []
        spans = []
        for a, b, offset in offset_segments(start, end, rule):
            first_day = math.floor((a + offset) / SECONDS_PER_DAY)
            last_day = math.floor((b + offset) / SECONDS_PER_DAY)
            for day in range(first_day, last_day + 1):
                midnight = day * SECONDS_PER_DAY - offset
                for lo, hi in intervals:
                    x, y = max(a, midnight + lo), min(b, midnight + hi)
                    if y > x:
                        spans.append((x, y))
        return merge_intervals(spans)
