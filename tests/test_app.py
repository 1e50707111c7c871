import pytest

from tuigotchi import app
from tuigotchi.creature import CreatureState
from tuigotchi.engine import SimulationEngine
from tuigotchi.storage import load_snapshot

from .conftest import HOUR, T0, make_config, make_need

EIGHT = T0 + 8 * HOUR


def engine_at(now, **levels):
    return SimulationEngine(make_config(make_need(), make_need("drink", windows=((0, 23 * HOUR),))), now, levels)


def test_need_name_records_an_action():
    engine = engine_at(EIGHT)
    message, should_quit = app.handle_command(engine, "hunger", EIGHT + 60)
    assert not should_quit
    assert "thank you" in message
    assert engine.is_replenishing("hunger", EIGHT + 120)


def test_do_prefix_and_spaces():
    engine = engine_at(EIGHT)
    message, _ = app.handle_command(engine, "do hunger", EIGHT + 60)
    assert "thank you" in message


def test_action_outside_window_is_explained():
    engine = engine_at(T0)
    message, _ = app.handle_command(engine, "hunger", T0 + HOUR)
    assert "not time" in message
    assert "08:00" in message
    assert not engine.is_replenishing("hunger", T0 + HOUR)


def test_unknown_need_lists_the_options():
    message, _ = app.handle_command(engine_at(T0), "snacks", T0)
    assert "Unknown need" in message and "hunger, drink" in message


def test_quit_and_empty_commands():
    engine = engine_at(T0)
    assert app.handle_command(engine, "", T0) == ("", False)
    assert app.handle_command(engine, "status", T0) == ("", False)
    assert app.handle_command(engine, "quit", T0) == ("", True)
    assert "hunger" in app.handle_command(engine, "needs", T0)[0]


def test_describe_tick_reports_transitions_and_skew():
    engine = engine_at(T0)
    tick = engine.advance(T0 + HOUR)
    assert "Hunger is critical!" in app.describe_tick(engine, tick)
    tick = engine.advance(T0)
    assert "backwards" in app.describe_tick(engine, tick)


def test_face():
    assert app.face(CreatureState("content")) == app.ASCII_ART["content"]
    assert app.face(CreatureState("want/eat", 0.9, "eat")) == f"{app.ASCII_ART['sad']} {app.NEED_ART['eat']}"
    assert app.face(CreatureState("want/odd", 0.1, "odd")) == f"{app.ASCII_ART['neutral']} {app.ASCII_ART['alert']}"


def test_display_status_renders(monkeypatch):
    console = app.Console(record=True, width=100)
    monkeypatch.setattr(app, "console", console)
    engine = engine_at(T0)
    engine.advance(T0 + HOUR)
    app.display_status(engine, T0 + HOUR)
    text = console.export_text()
    assert "Critter" in text
    assert "HUNGER!" in text


def test_load_engine_starts_fresh_then_resumes(tmp_path, monkeypatch):
    monkeypatch.setattr(app, "console", app.Console(record=True))
    config = make_config()
    path = tmp_path / "save.json"
    fresh = app.load_engine(config, path, now=T0)
    assert fresh.last_update == T0
    app.save_snapshot(fresh.snapshot(), path)
    resumed = app.load_engine(config, path, now=T0 + 50)
    assert resumed.last_update == T0
    assert load_snapshot(path).last_update == T0


@pytest.fixture
def terminal(monkeypatch):
    console = app.Console(record=True, width=100)
    monkeypatch.setattr(app, "console", console)
    monkeypatch.setattr(app.os, "system", lambda command: 0)
    return console


def test_run_saves_on_quit(terminal, tmp_path):
    commands = iter(["hunger", "status", "quit"])
    terminal.input = lambda prompt="": next(commands)
    path = tmp_path / "save.json"
    engine = app.run(make_config(), path)
    snapshot = load_snapshot(path)
    assert snapshot.last_update == engine.last_update
    assert set(snapshot.levels) == {"hunger"}
    assert "Goodbye!" in terminal.export_text()


@pytest.mark.parametrize("error", [EOFError, KeyboardInterrupt])
def test_run_saves_when_input_is_cut_off(terminal, tmp_path, error):
    def cut_off(prompt=""):
        raise error

    terminal.input = cut_off
    path = tmp_path / "save.json"
    app.run(make_config(), path)
    assert path.exists()
    assert load_snapshot(path) is not None
