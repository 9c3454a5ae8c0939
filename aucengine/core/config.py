"""
Engine configuration parameters for AucEngine.

Defines operational settings: data/log locations and input limits.
Economic parameters (the protocol fee) are constants in aucengine.core.fees.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from aucengine.utils.validation import MAX_ITEM_LENGTH

ENV_PREFIX = "AUCENGINE_"


@dataclass
class EngineConfig:
    """Engine-wide configuration parameters"""

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    db_name: str = "aucengine.db"

    # Logging
    log_level: int = logging.INFO
    log_to_file: bool = False

    # Input limits
    max_item_length: int = MAX_ITEM_LENGTH

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    def ensure_dirs(self) -> None:
        """Create necessary directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True, parents=True)


def _parse_level(value: str) -> int:
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def load_config(env_file: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from a .env file and the environment.

    Recognised variables (all optional):
        AUCENGINE_DATA_DIR, AUCENGINE_LOG_DIR, AUCENGINE_DB_NAME,
        AUCENGINE_LOG_LEVEL, AUCENGINE_LOG_TO_FILE, AUCENGINE_MAX_ITEM_LENGTH

    Args:
        env_file: Optional path to a .env file. If None, python-dotenv
            searches for one from the working directory upwards.

    Returns:
        EngineConfig instance
    """
    load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True), override=False)

    config = EngineConfig()

    def env(name: str) -> Optional[str]:
        return os.environ.get(ENV_PREFIX + name)

    if env("DATA_DIR"):
        config.data_dir = Path(env("DATA_DIR")).expanduser()
    if env("LOG_DIR"):
        config.log_dir = Path(env("LOG_DIR")).expanduser()
    if env("DB_NAME"):
        config.db_name = env("DB_NAME")
    if env("LOG_LEVEL"):
        config.log_level = _parse_level(env("LOG_LEVEL"))
    if env("LOG_TO_FILE"):
        config.log_to_file = env("LOG_TO_FILE").lower() in ("1", "true", "yes")
    if env("MAX_ITEM_LENGTH"):
        config.max_item_length = int(env("MAX_ITEM_LENGTH"))

    return config
