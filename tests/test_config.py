"""Tests for environment configuration."""
import os

import pytest

from job_feed_notifier.config import APP_MODE_BOT, APP_MODE_WORKER, load_config
from job_feed_notifier.constants import DEFAULT_FEED_URL
from job_feed_notifier.errors import ConfigurationError

ENV_KEYS = [
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_API_URL",
    "APP_MODE",
    "DATABASE_PATH",
    "POLL_INTERVAL_MS",
    "WORKER_RESTART_DELAY_MS",
    "RSS_BASE_URL",
    "RSS_TIMEOUT_SECONDS",
    "RSS_MAX_WORKERS",
    "DRAFT_LIMIT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_missing_token_is_a_configuration_error(clean_env):
    with pytest.raises(ConfigurationError, match="TELEGRAM_BOT_TOKEN"):
        load_config()


def test_defaults(clean_env):
    clean_env.setenv("TELEGRAM_BOT_TOKEN", "123:abc")

    config = load_config()

    assert config.app_mode == APP_MODE_BOT
    assert config.is_worker is False
    assert config.db_path == os.path.abspath("./data.sqlite")
    assert config.telegram.api_url == "https://api.telegram.org"
    assert config.feed.base_url == DEFAULT_FEED_URL
    assert config.poller.poll_interval_seconds == 180.0
    assert config.poller.worker_restart_delay_seconds == 3.0
    assert config.draft_limit == 1000


def test_overrides(clean_env, tmp_path):
    clean_env.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    clean_env.setenv("APP_MODE", "worker")
    clean_env.setenv("DATABASE_PATH", str(tmp_path / "bot.sqlite"))
    clean_env.setenv("TELEGRAM_API_URL", "http://localhost:8081/")
    clean_env.setenv("POLL_INTERVAL_MS", "60000")
    clean_env.setenv("RSS_MAX_WORKERS", "2")

    config = load_config()

    assert config.app_mode == APP_MODE_WORKER
    assert config.is_worker is True
    assert config.db_path == str(tmp_path / "bot.sqlite")
    assert config.telegram.api_url == "http://localhost:8081"
    assert config.poller.poll_interval_ms == 60000
    assert config.feed.max_workers == 2


def test_invalid_numbers_fall_back_to_defaults(clean_env):
    clean_env.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    clean_env.setenv("POLL_INTERVAL_MS", "soon")
    clean_env.setenv("WORKER_RESTART_DELAY_MS", "-5")
    clean_env.setenv("RSS_TIMEOUT_SECONDS", "0")

    config = load_config()

    assert config.poller.poll_interval_ms == 180000
    assert config.poller.worker_restart_delay_ms == 3000
    assert config.feed.timeout_seconds == 20.0
