"""Centralized storage paths for ankiserver."""

import json
import os
import tempfile
from pathlib import Path

# Base data directory for all persistent storage
DATA_DIR = Path(__file__).parent.parent.parent / ".ankiserver"

# Configuration
CONFIG_FILE = DATA_DIR / "config.json"

# Optional environment overrides (ANKI_CONNECT_URL etc.)
ENV_FILE = Path(__file__).parent.parent.parent / ".env"


def atomic_json_write(path: Path, data, *, indent: int = 2, ensure_ascii: bool = False) -> None:
    """Write JSON data to a file atomically.

    Writes to a temporary file in the same directory, then renames it
    over the target path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
