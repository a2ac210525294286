"""Main entry point for the job feed notifier."""

import argparse
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass

from .aggregator import FeedAggregator
from .bot import BotApp
from .config import AppConfig, load_config
from .db import SettingsStore
from .dispatcher import FeedDispatcher
from .errors import ConfigurationError
from .rss_client import FeedClient
from .scheduler import PollScheduler
from .supervisor import PollWorker, WorkerSupervisor
from .telegram import TelegramClient, TelegramNotifier

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything one process needs, wired from configuration."""
    store: SettingsStore
    telegram: TelegramClient
    feed_client: FeedClient
    scheduler: PollScheduler


def build_services(config: AppConfig) -> Services:
    store = SettingsStore(config.db_path)
    telegram = TelegramClient(config.telegram)
    feed_client = FeedClient(config.feed)
    aggregator = FeedAggregator(feed_client, max_workers=config.feed.max_workers)
    dispatcher = FeedDispatcher(store, aggregator, TelegramNotifier(telegram))
    return Services(
        store=store,
        telegram=telegram,
        feed_client=feed_client,
        scheduler=PollScheduler(store, dispatcher),
    )


def run_once(config: AppConfig) -> None:
    """Run a single poll tick and exit."""
    services = build_services(config)
    try:
        result = services.scheduler.tick()
        if result is not None:
            logger.info(
                f"Run completed: users={result.recipients} sent={result.sent} failed={result.failed}"
            )
    finally:
        services.feed_client.close()
        services.store.close()


def run_worker(config: AppConfig) -> int:
    """Worker mode: poll on a fixed interval until SIGTERM / SIGINT."""
    services = build_services(config)
    worker = PollWorker(services.scheduler, config.poller.poll_interval_seconds)
    worker.install_signal_handlers()
    try:
        return worker.run()
    finally:
        services.feed_client.close()
        services.store.close()


def run_bot(config: AppConfig) -> int:
    """Bot mode: serve chat commands and supervise the polling worker."""
    services = build_services(config)
    stop_event = threading.Event()
    supervisor = WorkerSupervisor(config.poller.worker_restart_delay_seconds)

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        # The worker may get the same signal and exit before app.run returns
        supervisor.begin_shutdown()
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    app = BotApp(
        services.telegram,
        services.store,
        services.scheduler,
        draft_limit=config.draft_limit,
    )

    supervisor.start()
    try:
        app.run(stop_event)
    finally:
        supervisor.stop()
        services.feed_client.close()
        services.store.close()
    return 0


def main():
    """Main entry point with command-line argument parsing."""
    parser = argparse.ArgumentParser(
        description="Watches the Djinni jobs RSS feed and sends new listings to Telegram chats"
    )
    parser.add_argument(
        "--mode",
        choices=["bot", "worker"],
        default=None,
        help="Process role (default: from APP_MODE env var, 'bot' unless APP_MODE=WORKER)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle for all configured chats and exit"
    )
    args = parser.parse_args()

    # Set environment variable if mode is specified
    if args.mode:
        os.environ["APP_MODE"] = args.mode.upper()

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    if args.once:
        run_once(config)
        return

    if config.is_worker:
        sys.exit(run_worker(config))
    sys.exit(run_bot(config))


if __name__ == "__main__":
    main()
