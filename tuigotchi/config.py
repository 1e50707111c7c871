import json
import math
import re
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .errors import ConfigError, InvalidWindow
from .needs import DEFAULT_HYSTERESIS_MARGIN, DEFAULT_MAX_LEVEL, DEFAULT_MIN_LEVEL, NeedConfig
from .schedule import ScheduleWindow
from .timezones import SECONDS_PER_DAY, ZoneRule

# --- Constants ---
CONFIG_DIR = Path.home() / ".tuigotchi"
CONFIG_FILE = CONFIG_DIR / "config.json"
DEFAULT_PET_NAME = "Critter"

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_NEED_KEYS = {
    "name", "decay_rate", "replenish_rate", "critical_threshold", "hysteresis_margin",
    "priority", "min_level", "max_level", "windows", "message",
}

# Speech lines per need; unknown needs get "I need to <name>".
NEED_MESSAGES = {
    "eat": "I'm hungry!",
    "drink": "I'm thirsty!",
    "brush_teeth": "My breath smells!",
    "shower": "I'm stinky!",
    "eyes_rest": "My eyes are tired!",
    "take_meds": "I don't feel good >.<",
    "sleep": "I'm eepy!",
    "bathroom": "I have to go!",
}

# Rates are per second on a 0..1 scale; e.g. 1/(6*3600) empties in six hours.
DEFAULT_NEEDS = [
    {"name": "drink", "decay_rate": 1 / (3 * 3600), "replenish_rate": 1 / 60, "critical_threshold": 0.3,
     "windows": [{"start": "08:00", "duration": "14:00"}]},
    {"name": "eat", "decay_rate": 1 / (6 * 3600), "replenish_rate": 1 / 300, "critical_threshold": 0.3,
     "windows": [{"start": "08:00", "duration": "01:00"}, {"start": "12:30", "duration": "01:00"},
                 {"start": "19:00", "duration": "01:30"}]},
    {"name": "take_meds", "decay_rate": 1 / (24 * 3600), "replenish_rate": 1 / 10, "critical_threshold": 0.5,
     "windows": [{"start": "09:00", "duration": "01:00"}]},
    {"name": "eyes_rest", "decay_rate": 1 / (2 * 3600), "replenish_rate": 1 / 120, "critical_threshold": 0.25,
     "windows": [{"start": "09:00", "duration": "12:00"}]},
    {"name": "bathroom", "decay_rate": 1 / (4 * 3600), "replenish_rate": 1 / 30, "critical_threshold": 0.2,
     "windows": [{"start": "07:00", "duration": "16:00"}]},
    {"name": "brush_teeth", "decay_rate": 1 / (12 * 3600), "replenish_rate": 1 / 60, "critical_threshold": 0.4,
     "windows": [{"start": "07:00", "duration": "01:30"}, {"start": "21:30", "duration": "01:30"}]},
    {"name": "shower", "decay_rate": 1 / (24 * 3600), "replenish_rate": 1 / 300, "critical_threshold": 0.3,
     "windows": [{"start": "07:00", "duration": "02:00"}]},
    {"name": "sleep", "decay_rate": 1 / (16 * 3600), "replenish_rate": 1 / (8 * 3600), "critical_threshold": 0.2,
     "windows": [{"start": "22:30", "duration": "09:00"}]},
]


def parse_clock(value, what="time") -> float:
    """``"HH:MM"``, ``"HH:MM:SS"`` or a number of seconds -> seconds."""
    if isinstance(value, bool):
        raise InvalidWindow(f"bad {what} {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidWindow(f"bad {what} {value!r}")
        return float(value)
    m = _CLOCK_RE.match(str(value).strip())
    if not m:
        raise InvalidWindow(f"bad {what} {value!r}, expected HH:MM or HH:MM:SS")
    hours, minutes, seconds = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if minutes >= 60 or seconds >= 60:
        raise InvalidWindow(f"bad {what} {value!r}")
    return float(hours * 3600 + minutes * 60 + seconds)


def format_clock(seconds: float) -> str:
    seconds = int(seconds) % SECONDS_PER_DAY
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"


def parse_window(data) -> ScheduleWindow:
    if isinstance(data, dict):
        try:
            start, duration = data["start"], data["duration"]
        except KeyError as e:
            raise InvalidWindow(f"window is missing {e.args[0]!r}") from e
    elif isinstance(data, (list, tuple)) and len(data) == 2:
        start, duration = data
    else:
        raise InvalidWindow(f"window must be {{'start', 'duration'}} or a pair, got {data!r}")
    return ScheduleWindow(parse_clock(start, "window start"), parse_clock(duration, "window duration"))


def parse_need(data, position: int) -> NeedConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"need #{position} must be a mapping, got {type(data).__name__}")
    unknown = set(data) - _NEED_KEYS
    if unknown:
        raise ConfigError(f"need #{position}: unknown keys {', '.join(sorted(unknown))}")
    missing = [k for k in ("name", "decay_rate", "replenish_rate", "critical_threshold") if k not in data]
    if missing:
        raise ConfigError(f"need #{position}: missing {', '.join(missing)}")
    windows = data.get("windows", [])
    if not isinstance(windows, list):
        raise ConfigError(f"need #{position}: windows must be a list")
    name = data["name"]
    return NeedConfig(
        name=name,
        decay_rate=data["decay_rate"],
        replenish_rate=data["replenish_rate"],
        critical_threshold=data["critical_threshold"],
        hysteresis_margin=data.get("hysteresis_margin", DEFAULT_HYSTERESIS_MARGIN),
        priority=data.get("priority", position),
        min_level=data.get("min_level", DEFAULT_MIN_LEVEL),
        max_level=data.get("max_level", DEFAULT_MAX_LEVEL),
        windows=tuple(parse_window(w) for w in windows),
        message=data.get("message") or NEED_MESSAGES.get(name, f"I need to {str(name).replace('_', ' ')}"),
    )


@dataclass(frozen=True)
class EngineConfig:
    zone: ZoneRule
    needs: tuple[NeedConfig, ...]
    catch_up_limit: float | None = None
    name: str = DEFAULT_PET_NAME

    def __post_init__(self):
        object.__setattr__(self, "needs", tuple(self.needs))
        if not self.needs:
            raise ConfigError("at least one need must be configured")
        seen = set()
        for need in self.needs:
            if need.name in seen:
                raise ConfigError(f"need {need.name!r} is configured twice")
            seen.add(need.name)
        if self.catch_up_limit is not None:
            limit = self.catch_up_limit
            if isinstance(limit, bool) or not isinstance(limit, (int, float)) or not limit > 0:
                raise ConfigError(f"catch_up_limit must be a positive number of seconds, got {limit!r}")

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigError(f"config must be a JSON object, got {type(data).__name__}")
        needs = data.get("needs")
        if not isinstance(needs, list):
            raise ConfigError("config needs a 'needs' list")
        unknown = set(data) - {"name", "zone", "catch_up_limit", "needs"}
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(sorted(unknown))}")
        zone = ZoneRule.parse(data.get("zone", {"utc_offset": "+00:00"}))
        return cls(
            zone=zone,
            needs=tuple(parse_need(n, i) for i, n in enumerate(needs)),
            catch_up_limit=data.get("catch_up_limit"),
            name=str(data.get("name") or DEFAULT_PET_NAME),
        )

    def need(self, name):
        for need in self.needs:
            if need.name == name:
                return need
        return None


def default_config_dict(zone: ZoneRule | None = None):
    zone = (zone or ZoneRule.utc()).to_dict()
    return {"name": DEFAULT_PET_NAME, "zone": zone, "catch_up_limit": None, "needs": DEFAULT_NEEDS}


def default_config(zone: ZoneRule | None = None) -> EngineConfig:
    return EngineConfig.from_dict(default_config_dict(zone))


def load_config(path=CONFIG_FILE) -> EngineConfig:
    """Read and validate the config file; raises ConfigError for anything malformed."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"{path}: not valid JSON ({e})") from e
    config = EngineConfig.from_dict(data)
    logger.info("Loaded config from {} ({} needs, zone {})", path, len(config.needs), config.zone)
    return config


def write_default_config(path=CONFIG_FILE, zone: ZoneRule | None = None):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(default_config_dict(zone), f, indent=4)
    logger.info("Wrote default config to {}", path)
    return path
