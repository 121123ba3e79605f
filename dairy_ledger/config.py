# dairy_ledger/config.py
import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME, DB_ENV_VAR

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR


def resolve_db_path() -> Path:
    """
    Database location, in priority order:
      1) DAIRY_LEDGER_DB environment variable
      2) <package>/data/dairy.db
    """
    override = os.getenv(DB_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return DATA_PATH / DB_FILE_NAME


DB_PATH = resolve_db_path()

# ensure data dir exists early
DB_PATH.parent.mkdir(parents=True, exist_ok=True)
