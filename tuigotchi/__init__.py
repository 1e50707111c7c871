from .config import EngineConfig, default_config, load_config
from .creature import CreatureState, derive
from .engine import ActionOutcome, AgendaItem, EngineSnapshot, SimulationEngine, Tick
from .errors import ClockSkewWarning, ConfigError, InvalidWindow, InvalidZoneRule, TuigotchiError, UnknownNeed
from .needs import NeedChannel, NeedConfig, NeedSnapshot, NeedStatus
from .schedule import Schedule, ScheduleWindow
from .timezones import ZoneRule, to_canonical, to_local

__version__ = "0.1.0"
