from datetime import datetime, timezone

import pytest
from loguru import logger

from tuigotchi.config import EngineConfig
from tuigotchi.needs import NeedConfig
from tuigotchi.schedule import ScheduleWindow
from tuigotchi.timezones import ZoneRule

# Monday 2024-01-01 00:00 UTC
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp()
HOUR = 3600


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


def make_need(name="hunger", windows=((8 * HOUR, 30 * 60),), **overrides):
    fields = dict(decay_rate=0.02, replenish_rate=0.5, critical_threshold=0.3, hysteresis_margin=0.05)
    fields.update(overrides)
    return NeedConfig(name=name, windows=tuple(ScheduleWindow(s, d) for s, d in windows), **fields)


def make_config(*needs, zone=None, catch_up_limit=None):
    return EngineConfig(zone=zone or ZoneRule.utc(), needs=needs or (make_need(),), catch_up_limit=catch_up_limit)


@pytest.fixture
def hunger_config():
    return make_config(make_need())
