"""
Runtime settings for flashdeck, read from the environment.

    FLASHDECK_DB   path of the deck store (default ~/.flashdeck/language_learning_data.db)
    DEBUG          set to 1 for debug logging
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import StorageLocationError

DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

DB_ENV_VAR = "FLASHDECK_DB"
DEFAULT_DIR_NAME = ".flashdeck"
DEFAULT_DB_NAME = "language_learning_data.db"


@dataclass(frozen=True)
class Settings:
    storage_path: Path


def default_storage_path() -> Path:
    try:
        home = Path.home()
    except RuntimeError as e:
        raise StorageLocationError(f"Could not determine a home directory: {e}") from e
    return home / DEFAULT_DIR_NAME / DEFAULT_DB_NAME


def resolve_storage_path(explicit: Optional[str] = None) -> Path:
    """Pick the store path (argument, then $FLASHDECK_DB, then the default)
    and make sure its directory exists and is writable."""
    raw = explicit or os.environ.get(DB_ENV_VAR)
    path = Path(raw).expanduser() if raw else default_storage_path()

    if path.is_dir():
        raise StorageLocationError(f"Storage path {path} is a directory")

    parent = path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageLocationError(f"Could not create storage directory {parent}: {e}") from e

    if not os.access(parent, os.W_OK):
        raise StorageLocationError(f"Storage directory {parent} is not writable")

    return path


def load_settings(storage_path: Optional[str] = None) -> Settings:
    return Settings(
        storage_path=resolve_storage_path(storage_path),
    )
