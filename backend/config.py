import time
from pathlib import Path

from pydantic_settings import BaseSettings

MS_PER_DAY = 86_400_000


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class Settings(BaseSettings):
    app_name: str = "FlashMind"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'flashmind.db'}"
    session_size_limit: int = 50
    default_ease_factor: float = 2.5
    debug: bool = False

    model_config = {"env_prefix": "FLASHMIND_", "env_file": ".env"}


settings = Settings()
