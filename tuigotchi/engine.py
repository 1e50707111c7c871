"""The need simulation: decay, scheduled replenishment and catch-up."""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from loguru import logger

from . import creature
from .config import EngineConfig
from .errors import ClockSkewWarning, UnknownNeed
from .needs import NeedChannel, NeedSnapshot, NeedStatus
from .schedule import Schedule, merge_intervals, total_length
from .timezones import local_date, local_instant, time_of_day, to_local


class ActionOutcome(Enum):
    ACCEPTED = "accepted"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Tick:
    now: float
    elapsed: float
    skipped: float = 0.0
    skew: ClockSkewWarning | None = None
    transitions: tuple[tuple[str, NeedStatus, NeedStatus], ...] = ()


@dataclass(frozen=True)
class AgendaItem:
    need: str
    in_window: bool
    replenishing: bool
    next_start: datetime | None


@dataclass(frozen=True)
class EngineSnapshot:
    """What survives a restart: the last canonical update and each need's level."""
    last_update: float
    levels: dict[str, float] = field(default_factory=dict)

    def to_dict(self):
        return {"last_update": self.last_update, "levels": dict(self.levels)}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError(f"snapshot must be a mapping, got {type(data).__name__}")
        last_update = data["last_update"]
        levels = data.get("levels", {})
        if isinstance(last_update, bool) or not isinstance(last_update, (int, float)) or not math.isfinite(last_update):
            raise ValueError(f"bad last_update {last_update!r}")
        if not isinstance(levels, dict):
            raise TypeError("levels must be a mapping")
        for name, level in levels.items():
            if isinstance(level, bool) or not isinstance(level, (int, float)) or not math.isfinite(level):
                raise ValueError(f"bad level {level!r} for need {name!r}")
        return cls(float(last_update), {str(k): float(v) for k, v in levels.items()})


class SimulationEngine:
    """Owns every need channel and the schedule.

    Not thread-safe: callers funnel ``advance``, ``record_action`` and the
    read operations through one thread or one lock.
    """

    def __init__(self, config: EngineConfig, last_update: float, levels=None):
        self.config = config
        self.zone = config.zone
        self.schedule = Schedule()
        self.last_update = float(last_update)
        levels = levels or {}
        self._channels = {}
        self._sessions = {}
        for need in config.needs:
            for window in need.windows:
                self.schedule.add_window(need.name, window)
            self._channels[need.name] = NeedChannel(need, levels.get(need.name))
            self._sessions[need.name] = []
        dropped = set(levels) - set(self._channels)
        if dropped:
            logger.info("Dropping saved levels for needs no longer configured: {}", ", ".join(sorted(dropped)))

    @classmethod
    def from_snapshot(cls, config: EngineConfig, snapshot: EngineSnapshot):
        return cls(config, snapshot.last_update, snapshot.levels)

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(self.last_update, {name: ch.level for name, ch in self._channels.items()})

    def _channel(self, name) -> NeedChannel:
        try:
            return self._channels[name]
        except KeyError:
            raise UnknownNeed(name) from None

    # --- Simulation ---
    def _replenish_seconds(self, name, start, end):
        spans = [(max(a, start), min(b, end)) for a, b in self._sessions[name]]
        return total_length(merge_intervals([(a, b) for a, b in spans if b > a]))

    def advance(self, now: float) -> Tick:
        now = float(now)
        elapsed = now - self.last_update
        if elapsed < 0:
            skew = ClockSkewWarning(self.last_update, now)
            logger.warning("Clock skew: {}; treating elapsed time as zero", skew)
            return Tick(now=self.last_update, elapsed=0.0, skew=skew)

        start, skipped = self.last_update, 0.0
        limit = self.config.catch_up_limit
        if limit is not None and elapsed > limit:
            skipped = elapsed - limit
            start = now - limit
            logger.info("Catching up {:.0f}s; only the last {:.0f}s are simulated", elapsed, limit)

        transitions = []
        for name, channel in self._channels.items():
            change = channel.step(now - start, self._replenish_seconds(name, start, now))
            if change:
                transitions.append((name, *change))
            self._sessions[name] = [(a, b) for a, b in self._sessions[name] if b > now]
        self.last_update = now
        return Tick(now=now, elapsed=elapsed, skipped=skipped, transitions=tuple(transitions))

    def record_action(self, need: str, when: float) -> ActionOutcome:
        """Log that the user looked after ``need`` at ``when``.

        Accepted actions replenish from ``when`` until the end of the window
        they fall in, applied by the ``advance`` calls covering that span.
        Actions older than ``last_update`` are ignored: that time has
        already been simulated.
        """
        self._channel(need)
        when = float(when)
        if when < self.last_update:
            logger.debug("Ignored {} at {}: before the last update", need, to_local(when, self.zone))
            return ActionOutcome.IGNORED
        end = self.schedule.window_end(need, when, self.zone)
        if end is None or end <= when:
            logger.debug("Ignored {} at {}: outside its windows", need, to_local(when, self.zone))
            return ActionOutcome.IGNORED
        self._sessions[need].append((when, end))
        logger.info("Recorded {} at {} (replenishing until {})", need, to_local(when, self.zone), to_local(end, self.zone))
        return ActionOutcome.ACCEPTED

    # --- Queries ---
    def current_needs(self) -> tuple[NeedSnapshot, ...]:
        return tuple(ch.snapshot() for ch in self._channels.values())

    def need(self, name: str) -> NeedSnapshot:
        return self._channel(name).snapshot()

    def is_replenishing(self, need: str, now: float) -> bool:
        self._channel(need)
        return any(a <= now < b for a, b in self._sessions[need])

    def creature_state(self) -> creature.CreatureState:
        return creature.derive(self.current_needs())

    def agenda(self, now: float) -> tuple[AgendaItem, ...]:
        tod, today = time_of_day(now, self.zone), local_date(now, self.zone)
        items = []
        for name in self._channels:
            next_start = None
            start = self.schedule.next_window_start(name, tod)
            if start is not None:
                day = today if start >= tod else today + timedelta(days=1)
                next_start = to_local(local_instant(day, start, self.zone), self.zone)
            items.append(AgendaItem(
                need=name,
                in_window=self.schedule.is_in_window(name, tod),
                replenishing=self.is_replenishing(name, now),
                next_start=next_start,
            ))
        return tuple(items)
