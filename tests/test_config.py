import json

import pytest

from tuigotchi.config import (
    EngineConfig, default_config, format_clock, load_config, parse_clock, write_default_config,
)
from tuigotchi.errors import ConfigError, InvalidWindow, InvalidZoneRule
from tuigotchi.engine import SimulationEngine
from tuigotchi.timezones import ZoneRule

from .conftest import HOUR, T0


def config_dict(**overrides):
    data = {
        "name": "Mochi",
        "zone": {"name": "Europe/Berlin"},
        "needs": [
            {"name": "eat", "decay_rate": 0.001, "replenish_rate": 0.01, "critical_threshold": 0.3,
             "windows": [{"start": "08:00", "duration": "00:30"}, ["12:00", 1800]]},
            {"name": "drink", "decay_rate": 0.002, "replenish_rate": 0.05, "critical_threshold": 0.25,
             "hysteresis_margin": 0.1, "priority": -1},
        ],
    }
    data.update(overrides)
    return data


def test_from_dict():
    config = EngineConfig.from_dict(config_dict())
    assert config.name == "Mochi"
    assert config.zone == ZoneRule.named("Europe/Berlin")
    assert config.catch_up_limit is None
    eat, drink = config.needs
    assert [(w.start, w.duration) for w in eat.windows] == [(8 * HOUR, 1800), (12 * HOUR, 1800)]
    assert eat.priority == 0 and drink.priority == -1
    assert eat.hysteresis_margin == 0.05
    assert eat.message == "I'm hungry!"
    assert drink.windows == ()
    assert config.need("drink") is drink
    assert config.need("nope") is None


def test_default_config_builds_an_engine():
    config = default_config(ZoneRule.fixed(hours=1))
    assert len(config.needs) == 8
    assert config.zone == ZoneRule.fixed(hours=1)
    engine = SimulationEngine(config, T0)
    assert engine.schedule.is_in_window("sleep", 2 * HOUR)
    assert engine.schedule.next_window_start("sleep", 2 * HOUR) == 22.5 * HOUR


def test_parse_clock():
    assert parse_clock("08:30") == 8 * HOUR + 30 * 60
    assert parse_clock("7:05:09") == 7 * HOUR + 5 * 60 + 9
    assert parse_clock(90) == 90.0
    for bad in ("8h", "08:60", "12:00:61", True):
        with pytest.raises(InvalidWindow):
            parse_clock(bad)
    assert format_clock(22.5 * HOUR) == "22:30"


@pytest.mark.parametrize("window, error", [
    ({"start": "25:00", "duration": "00:30"}, InvalidWindow),
    ({"start": "08:00", "duration": "00:00"}, InvalidWindow),
    ({"start": "08:00", "duration": "24:00"}, InvalidWindow),
    ({"start": "08:00"}, InvalidWindow),
    ("08:00-09:00", InvalidWindow),
])
def test_bad_windows_stop_loading(window, error):
    data = config_dict()
    data["needs"][0]["windows"] = [window]
    with pytest.raises(error):
        EngineConfig.from_dict(data)


@pytest.mark.parametrize("overrides, error", [
    ({"zone": {"utc_offset": "+24:00"}}, InvalidZoneRule),
    ({"zone": {"name": "Nowhere/Special"}}, InvalidZoneRule),
    ({"needs": []}, ConfigError),
    ({"needs": "eat"}, ConfigError),
    ({"catch_up_limit": 0}, ConfigError),
    ({"colour": "blue"}, ConfigError),
])
def test_bad_configs(overrides, error):
    with pytest.raises(error):
        EngineConfig.from_dict(config_dict(**overrides))


def test_duplicate_and_malformed_needs():
    data = config_dict()
    data["needs"].append(dict(data["needs"][0]))
    with pytest.raises(ConfigError, match="twice"):
        EngineConfig.from_dict(data)
    data = config_dict()
    del data["needs"][1]["replenish_rate"]
    with pytest.raises(ConfigError, match="replenish_rate"):
        EngineConfig.from_dict(data)
    data = config_dict()
    data["needs"][1]["speed"] = 3
    with pytest.raises(ConfigError, match="speed"):
        EngineConfig.from_dict(data)
    data = config_dict()
    data["needs"][0]["decay_rate"] = 0
    with pytest.raises(ConfigError, match="decay_rate"):
        EngineConfig.from_dict(data)


def test_load_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_dict(catch_up_limit=86400)))
    config = load_config(path)
    assert config.catch_up_limit == 86400
    assert [n.name for n in config.needs] == ["eat", "drink"]


def test_load_config_rejects_bad_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(path)


def test_written_default_config_loads_back(tmp_path):
    path = write_default_config(tmp_path / "nested" / "config.json", ZoneRule.named("America/New_York"))
    config = load_config(path)
    assert config == default_config(ZoneRule.named("America/New_York"))
