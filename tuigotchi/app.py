import os
import time
from pathlib import Path

from loguru import logger
from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from .config import CONFIG_DIR, EngineConfig, format_clock
from .engine import ActionOutcome, SimulationEngine, Tick
from .errors import UnknownNeed
from .needs import NeedStatus
from .storage import SAVE_FILE, load_snapshot, save_snapshot
from .timezones import time_of_day, to_local

# --- Constants ---
LOG_FILE = CONFIG_DIR / "tuigotchi.log"
SAD_STAGES = 2

# --- Global Objects & Emojis ---
console = Console()
ASCII_ART = {
    "content": "😺",
    "neutral": "🐱",
    "sad": "😿",
    "alert": ":warning:",
}
NEED_ART = {
    "eat": "🍙",
    "drink": "🥤",
    "brush_teeth": "🪥",
    "shower": "🚿",
    "eyes_rest": "👀",
    "take_meds": "💊",
    "sleep": "😴",
    "bathroom": "🚽",
}


def setup_logging(path=LOG_FILE, level="INFO"):
    """Log to a file only; the terminal belongs to the status panel."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(
        path,
        rotation="1 MB",
        retention="7 days",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
    )
    return path


def create_progress_bar(label, completed, total, low_color, mid_color, high_color, low_threshold, high_threshold):
    progress = Progress(
        TextColumn(f"{label}:{' ' * max(1, 13 - len(label))}"), BarColumn(bar_width=20), TextColumn("{task.percentage:>3.0f}%"),
    )
    style = mid_color
    if completed <= low_threshold: style = low_color
    elif completed >= high_threshold: style = high_color
    task_id = progress.add_task(label.lower(), total=total, completed=completed)
    progress.update(task_id, style=style)
    return progress


def face(state):
    if state.is_content: return ASCII_ART["content"]
    mood = ASCII_ART["sad"] if state.stage(SAD_STAGES) else ASCII_ART["neutral"]
    return f"{mood} {NEED_ART.get(state.need, ASCII_ART['alert'])}"


def describe_agenda(item):
    if item.replenishing: return "[green]being looked after[/]"
    if item.in_window: return "[bold cyan]now![/]"
    if item.next_start is None: return "[dim]no window[/]"
    return f"[dim]next at {item.next_start:%H:%M}[/]"


def display_status(engine: SimulationEngine, now: float):
    config = engine.config
    state = engine.creature_state()
    needs = engine.current_needs()
    alerts = [n for n in needs if n.is_critical]
    panel_border_style = "blink red" if alerts else "blue"

    if state.is_content: speech = "[green]All good![/green]"
    else: speech = f"[bold yellow]{config.need(state.need).message}[/bold yellow]"

    bars = []
    for need in needs:
        span = need.max_level - need.min_level
        threshold_pct = (need.critical_threshold - need.min_level) / span * 100
        recovered_pct = threshold_pct + need.hysteresis_margin / span * 100
        bars.append(create_progress_bar(config.need(need.name).label, need.fraction * 100, 100, "red", "yellow", "green", threshold_pct, max(recovered_pct, 75)))

    agenda = Table.grid(padding=(0, 2))
    for item in engine.agenda(now):
        agenda.add_row(config.need(item.need).label, describe_agenda(item))

    title = f"{config.name} - {to_local(now, engine.zone):%a %H:%M} ({engine.zone})"
    subtitle = " | ".join(f"[bold red]{config.need(n.name).label.upper()}![/]" for n in alerts) or "[green]Content[/]"
    panel_content = Group(Align.center(face(state)), Align.center(speech), *bars, "", agenda)
    console.print(Panel(panel_content, title=title, subtitle=subtitle, border_style=panel_border_style, subtitle_align="right"))


def describe_tick(engine: SimulationEngine, tick: Tick):
    lines = []
    if tick.skew is not None:
        lines.append(f"[yellow]Clock moved backwards by {tick.skew.skew_seconds:.0f}s; no time passed.[/yellow]")
    if tick.skipped:
        lines.append(f"[dim]({tick.skipped:.0f}s away were not simulated)[/dim]")
    for name, _, new in tick.transitions:
        label = engine.config.need(name).label
        if new is NeedStatus.CRITICAL: lines.append(f"[bold red]{label} is critical![/bold red]")
        else: lines.append(f"[green]{label} has recovered.[/green]")
    return "\n".join(lines)


def handle_command(engine: SimulationEngine, command: str, now: float):
    """Run one prompt command. Returns ``(message, should_quit)``."""
    words = command.split()
    if not words or command == "status": return "", False
    if command in ("quit", "exit", "q"): return "", True
    if command == "needs":
        return "[cyan]Needs:[/] " + ", ".join(n.name for n in engine.config.needs), False

    name = "_".join(words[1:] if words[0] == "do" and len(words) > 1 else words)
    try:
        outcome = engine.record_action(name, now)
    except UnknownNeed:
        return f"[red]Unknown need: {name}. Try: {', '.join(n.name for n in engine.config.needs)}[/red]", False
    label = engine.config.need(name).label
    if outcome is ActionOutcome.ACCEPTED:
        return f"[green]{ASCII_ART['content']} {label}: thank you![/green]", False
    start = engine.schedule.next_window_start(name, time_of_day(now, engine.zone))
    when = f" (next window at {format_clock(start)})" if start is not None else ""
    return f"[yellow]It's not time for {label.lower()} right now{when}.[/yellow]", False


def load_engine(config: EngineConfig, save_path=SAVE_FILE, now=None):
    now = time.time() if now is None else now
    snapshot = load_snapshot(save_path)
    if snapshot is None:
        console.print(f"[yellow]Hatching a new {config.name}![/yellow]")
        return SimulationEngine(config, now)
    console.print(f"[bold green]Loading saved state for '{config.name}'...[/bold green]")
    return SimulationEngine.from_snapshot(config, snapshot)


def run(config: EngineConfig, save_path=SAVE_FILE):
    engine = load_engine(config, save_path)
    available_commands_display = "[cyan]<need>[/], [cyan]do <need>[/], [cyan]needs[/], [cyan]status[/], [cyan]quit[/]"
    last_action_message = ""
    try:
        while True:
            tick = engine.advance(time.time())
            os.system('cls' if os.name == 'nt' else 'clear')
            display_status(engine, tick.now)

            message_to_display = ""
            tick_msg = describe_tick(engine, tick)
            if tick_msg: message_to_display += tick_msg + "\n"
            if last_action_message: message_to_display += last_action_message + "\n"; last_action_message = ""
            if message_to_display: console.print(message_to_display.strip())

            try: command = console.input(f"Command ({available_commands_display}): ").lower().strip()
            except EOFError: command = "quit"
            except KeyboardInterrupt: command = "quit"; console.print("\n[bold yellow]Quitting on user interrupt...[/bold yellow]")

            last_action_message, should_quit = handle_command(engine, command, time.time())
            if should_quit: break
    finally:
        engine.advance(time.time())
        save_snapshot(engine.snapshot(), save_path)
    console.print(f"[bold blue]Goodbye! {config.name}'s state saved.[/bold blue]")
    return engine
