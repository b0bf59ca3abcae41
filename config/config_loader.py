import logging
import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

DEFAULT_STORAGE_KEY = "prompts"


def load_config(env_path: str | None = None) -> None:
    env_file = Path(env_path) if env_path else Path(".env")
    if not env_file.exists():
        logging.warning("'.env' not found – using defaults. Copy '.env.template' to '.env'.")
    load_dotenv(dotenv_path=env_file if env_file.exists() else None)
    logging.info("Configuration loaded.")


@dataclass(frozen=True)
class Settings:
    data_dir: Path | None
    storage_key: str
    log_level: str
    cursor_timeout: float


def get_settings() -> Settings:
    """Settings from the environment (call load_config() first to pick up .env)."""
    data_dir = os.environ.get("PROMPT_DATA_DIR")
    try:
        cursor_timeout = float(os.environ.get("PROMPT_CURSOR_TIMEOUT", "10"))
    except ValueError:
        logging.warning("Invalid PROMPT_CURSOR_TIMEOUT=%r – using 10s.", os.environ.get("PROMPT_CURSOR_TIMEOUT"))
        cursor_timeout = 10.0
    return Settings(
        data_dir=Path(data_dir) if data_dir else None,
        storage_key=os.environ.get("PROMPT_STORAGE_KEY", DEFAULT_STORAGE_KEY) or DEFAULT_STORAGE_KEY,
        log_level=os.environ.get("PROMPT_LOG_LEVEL", "INFO").upper(),
        cursor_timeout=cursor_timeout,
    )
