import math
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from .errors import ConfigError
from .schedule import ScheduleWindow

# --- Defaults ---
DEFAULT_MIN_LEVEL = 0.0
DEFAULT_MAX_LEVEL = 1.0
DEFAULT_HYSTERESIS_MARGIN = 0.05


class NeedStatus(Enum):
    HEALTHY = "healthy"
    CRITICAL = "critical"


def _number(name, key, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigError(f"need {name!r}: {key} must be a finite number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class NeedConfig:
    name: str
    decay_rate: float
    replenish_rate: float
    critical_threshold: float
    hysteresis_margin: float = DEFAULT_HYSTERESIS_MARGIN
    priority: int = 0
    min_level: float = DEFAULT_MIN_LEVEL
    max_level: float = DEFAULT_MAX_LEVEL
    windows: tuple[ScheduleWindow, ...] = field(default_factory=tuple)
    message: str = ""

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigError(f"need name must be a non-empty string, got {self.name!r}")
        n = self.name
        for key in ("decay_rate", "replenish_rate", "critical_threshold", "hysteresis_margin", "min_level", "max_level"):
            object.__setattr__(self, key, _number(n, key, getattr(self, key)))
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ConfigError(f"need {n!r}: priority must be an integer, got {self.priority!r}")
        if self.decay_rate <= 0: raise ConfigError(f"need {n!r}: decay_rate must be positive")
        if self.replenish_rate <= 0: raise ConfigError(f"need {n!r}: replenish_rate must be positive")
        if self.hysteresis_margin < 0: raise ConfigError(f"need {n!r}: hysteresis_margin must not be negative")
        if self.min_level >= self.max_level:
            raise ConfigError(f"need {n!r}: min_level must be below max_level")
        if not self.min_level < self.critical_threshold < self.max_level:
            raise ConfigError(f"need {n!r}: critical_threshold must lie strictly between {self.min_level} and {self.max_level}")
        object.__setattr__(self, "windows", tuple(self.windows))

    @property
    def label(self):
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class NeedSnapshot:
    name: str
    level: float
    status: NeedStatus
    critical_threshold: float
    hysteresis_margin: float
    priority: int
    min_level: float
    max_level: float

    @property
    def is_critical(self):
        return self.status is NeedStatus.CRITICAL

    @property
    def deficit(self):
        """Distance above the critical threshold; negative once below it."""
        return self.level - self.critical_threshold

    @property
    def fraction(self):
        return (self.level - self.min_level) / (self.max_level - self.min_level)


class NeedChannel:
    """One vital stat. Only the engine mutates it."""

    def __init__(self, config: NeedConfig, level=None):
        self.config = config
        self.level = config.max_level if level is None else self._clamp(float(level))
        self.status = NeedStatus.CRITICAL if self.level <= config.critical_threshold else NeedStatus.HEALTHY

    @property
    def name(self):
        return self.config.name

    def _clamp(self, level):
        return max(self.config.min_level, min(self.config.max_level, level))

    def step(self, elapsed: float, replenish_seconds: float = 0.0):
        """Apply ``elapsed`` seconds of decay plus ``replenish_seconds`` of replenishment.

        Linear in time, so one call over a long gap equals many small calls
        as long as the level never hits a bound in between. Returns
        ``(old_status, new_status)`` when the status changed, else None.
        """
        cfg = self.config
        self.level = self._clamp(self.level - cfg.decay_rate * elapsed + cfg.replenish_rate * replenish_seconds)
        old = self.status
        if self.level <= cfg.critical_threshold:
            self.status = NeedStatus.CRITICAL
        elif old is NeedStatus.CRITICAL and self.level > cfg.critical_threshold + cfg.hysteresis_margin:
            self.status = NeedStatus.HEALTHY
        if self.status is old:
            return None
        logger.info("Need {} is now {} (level {:.3f})", self.name, self.status.value, self.level)
        return old, self.status

    def snapshot(self) -> NeedSnapshot:
        cfg = self.config
        return NeedSnapshot(
            name=cfg.name, level=self.level, status=self.status, critical_threshold=cfg.critical_threshold,
            hysteresis_margin=cfg.hysteresis_margin, priority=cfg.priority, min_level=cfg.min_level, max_level=cfg.max_level,
        )

    def __repr__(self):
        return f"NeedChannel({self.name!r}, level={self.level:.3f}, status={self.status.value})"
