"""Tuigotchi: a terminal pet whose needs follow your daily routine.

Run:
  python -m tuigotchi [--config PATH] [--save PATH] [--reset]
"""
import argparse
from datetime import datetime
from pathlib import Path

from loguru import logger
from rich.console import Console
from tzlocal import get_localzone_name

from . import app, config as config_module, storage
from .errors import ConfigError, InvalidZoneRule
from .timezones import ZoneRule


def _local_zone():
    """The system zone by IANA name, or its current UTC offset when no name can be found."""
    try:
        name = get_localzone_name()
    except (LookupError, OSError, ValueError):
        name = None
    if name:
        try:
            return ZoneRule.named(name)
        except InvalidZoneRule:
            logger.warning("System time zone {!r} is unknown here; using its current UTC offset", name)
    return ZoneRule(utc_offset=datetime.now().astimezone().utcoffset())


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="A terminal pet that reminds you to look after yourself.")
    parser.add_argument("--config", default=config_module.CONFIG_FILE, help=f"config file (default: {config_module.CONFIG_FILE})")
    parser.add_argument("--save", default=storage.SAVE_FILE, help=f"save file (default: {storage.SAVE_FILE})")
    parser.add_argument("--reset", action="store_true", help="ignore the existing save and start fresh")
    parser.add_argument("--log-level", default="INFO", help="log level for the log file (default: INFO)")
    args = parser.parse_args(argv)

    console = Console()
    app.setup_logging(level=args.log_level.upper())
    try:
        if not Path(args.config).exists():
            config_module.write_default_config(args.config, _local_zone())
            console.print(f"[yellow]Wrote a default config to {args.config}; edit it to match your day.[/yellow]")
        config = config_module.load_config(args.config)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {e}")
        return 2
    except OSError as e:
        console.print(f"[bold red]Cannot read config {args.config}:[/bold red] {e}")
        return 2
    if args.reset:
        storage.delete_snapshot(args.save)
    app.run(config, args.save)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
