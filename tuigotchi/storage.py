import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from .engine import EngineSnapshot

# --- Constants ---
SAVE_FILE_DIR = Path.home() / ".tuigotchi"
SAVE_FILE = SAVE_FILE_DIR / "save.json"


def save_snapshot(snapshot: EngineSnapshot, path=SAVE_FILE):
    """Write the snapshot next to its target and swap it in, so a reader never sees half a file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(snapshot.to_dict(), f, indent=4)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    logger.debug("Saved state to {}", path)
    return path


def load_snapshot(path=SAVE_FILE) -> EngineSnapshot | None:
    """Read a saved snapshot. Missing file -> None; a corrupt file is moved aside and None returned."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r") as f:
            data = json.load(f)
        snapshot = EngineSnapshot.from_dict(data)
    except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError) as e:
        logger.error("Could not load state from {}: {}", path, e)
        backup_path = path.with_suffix(".corrupt.json")
        try:
            path.replace(backup_path)
            logger.warning("Backed up corrupt save to {}", backup_path)
        except OSError:
            logger.warning("Could not back up corrupt save file; removing it")
            path.unlink(missing_ok=True)
        return None
    logger.info("Loaded state from {}", path)
    return snapshot


def delete_snapshot(path=SAVE_FILE):
    Path(path).unlink(missing_ok=True)
