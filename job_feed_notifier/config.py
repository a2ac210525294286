"""Configuration management."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .constants import DEFAULT_FEED_URL
from .errors import ConfigurationError

load_dotenv()

APP_MODE_BOT = "BOT"
APP_MODE_WORKER = "WORKER"


@dataclass
class TelegramConfig:
    """Telegram Bot API configuration."""
    bot_token: str
    api_url: str = "https://api.telegram.org"
    request_timeout: float = 30.0
    long_poll_timeout: int = 25   # seconds the server may hold getUpdates open


@dataclass
class FeedConfig:
    """Remote RSS feed configuration."""
    base_url: str = DEFAULT_FEED_URL
    user_agent: str = "djinni-rss-telegram-bot/1.0"
    timeout_seconds: float = 20.0
    max_workers: int = 4          # concurrent category fetches per recipient


@dataclass
class PollerConfig:
    """Polling cadence and worker supervision."""
    poll_interval_ms: int = 180000
    worker_restart_delay_ms: int = 3000

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def worker_restart_delay_seconds(self) -> float:
        return self.worker_restart_delay_ms / 1000.0


@dataclass
class AppConfig:
    """Complete application configuration."""
    db_path: str
    app_mode: str                 # "BOT" or "WORKER"
    telegram: TelegramConfig
    feed: FeedConfig
    poller: PollerConfig
    draft_limit: int = 1000

    @property
    def is_worker(self) -> bool:
        return self.app_mode == APP_MODE_WORKER


def _positive_int_env(key: str, default: int) -> int:
    """Parse a positive integer from the environment, falling back to default."""
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.

    Raises:
        ConfigurationError: If required configuration values are missing.
    """
    bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()

    missing = []
    if not bot_token:
        missing.append("TELEGRAM_BOT_TOKEN")

    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    app_mode = APP_MODE_WORKER if os.getenv("APP_MODE", "").strip().upper() == APP_MODE_WORKER else APP_MODE_BOT
    db_path = os.getenv("DATABASE_PATH") or "./data.sqlite"

    return AppConfig(
        db_path=os.path.abspath(db_path),
        app_mode=app_mode,
        telegram=TelegramConfig(
            bot_token=bot_token,
            api_url=os.getenv("TELEGRAM_API_URL", "https://api.telegram.org").rstrip("/"),
        ),
        feed=FeedConfig(
            base_url=os.getenv("RSS_BASE_URL", DEFAULT_FEED_URL),
            timeout_seconds=_float_env("RSS_TIMEOUT_SECONDS", 20.0),
            max_workers=_positive_int_env("RSS_MAX_WORKERS", 4),
        ),
        poller=PollerConfig(
            poll_interval_ms=_positive_int_env("POLL_INTERVAL_MS", 180000),
            worker_restart_delay_ms=_positive_int_env("WORKER_RESTART_DELAY_MS", 3000),
        ),
        draft_limit=_positive_int_env("DRAFT_LIMIT", 1000),
    )
