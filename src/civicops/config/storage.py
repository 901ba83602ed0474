"""Location of the document archive and entity registry database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool

APP_DIR_NAME: Final[str] = "civicops"
DEFAULT_DB_FILENAME: Final[str] = "civicops.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def data_dir() -> Path:
    """``CIVICOPS_DATA_DIR`` if set, else ``civicops`` under the XDG data home."""

    configured = os.getenv("CIVICOPS_DATA_DIR")
    if configured:
        return Path(configured).expanduser().resolve()
    xdg_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".local" / "share"
    return (base / APP_DIR_NAME).expanduser().resolve()


def get_database_config() -> DatabaseConfig:
    echo = env_bool("CIVICOPS_SQL_ECHO")
    uri = os.getenv("DATABASE_URI")
    if uri:
        return DatabaseConfig(uri=uri, echo=echo)
    directory = data_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{directory / DEFAULT_DB_FILENAME}", echo=echo)
