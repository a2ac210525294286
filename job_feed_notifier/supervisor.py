"""Run the poller in a separate worker process and keep it alive.

The bot process owns a WorkerSupervisor. It starts the same program with
APP_MODE=WORKER in a child process, waits for it to exit and starts it again
after a fixed delay unless the bot itself is shutting down. Inside the child,
PollWorker runs the scheduler on a fixed interval until it is told to stop.
"""

import enum
import logging
import os
import signal
import subprocess
import sys
import threading
import time
from typing import Callable, Optional

from .scheduler import PollScheduler

logger = logging.getLogger(__name__)


class WorkerState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


class PollWorker:
    """Interval timer around PollScheduler.tick inside the worker process."""

    def __init__(self, scheduler: PollScheduler, interval_seconds: float):
        self.scheduler = scheduler
        self.interval_seconds = interval_seconds
        self.state = WorkerState.STOPPED
        self._stop_event = threading.Event()

    def run(self) -> int:
        """
        Tick immediately, then once per interval until stopped.

        A tick that is already running when stop() is called finishes first.

        Returns:
            Process exit code: 0 after a requested stop, 1 after a crash.
        """
        self._stop_event.clear()
        self.state = WorkerState.RUNNING
        logger.info(f"Polling worker started. Interval: {self.interval_seconds:g}s")

        try:
            next_run = time.monotonic()
            while not self._stop_event.is_set():
                self.scheduler.tick()
                next_run += self.interval_seconds
                delay = next_run - time.monotonic()
                if delay < 0:
                    # Tick overran the interval; start counting again from now
                    next_run = time.monotonic()
                    delay = 0
                if self._stop_event.wait(delay):
                    break
        except Exception:
            logger.exception("Polling worker crashed")
            self.state = WorkerState.STOPPED
            return 1

        self.state = WorkerState.STOPPED
        logger.info("Polling worker stopped")
        return 0

    def stop(self) -> None:
        """Cancel the pending timer. Safe to call from a signal handler."""
        if self.state == WorkerState.RUNNING:
            self.state = WorkerState.STOPPING
        self._stop_event.set()

    def install_signal_handlers(self) -> None:
        """Stop on SIGINT / SIGTERM. Must be called from the main thread."""
        def _handle(signum, frame):
            logger.info(f"Polling worker received signal {signum}, stopping")
            self.stop()

        signal.signal(signal.SIGINT, _handle)
        signal.signal(signal.SIGTERM, _handle)


def spawn_worker_process() -> subprocess.Popen:
    """Start this program again in worker mode, sharing stdout/stderr."""
    env = dict(os.environ, APP_MODE="WORKER")
    return subprocess.Popen([sys.executable, "-m", "job_feed_notifier"], env=env)


class WorkerSupervisor:
    """
    Keeps one worker process running on behalf of the bot process.

    Every unplanned exit is followed by a respawn after restart_delay seconds.
    There is no limit on the number of respawns and the delay never grows.
    """

    def __init__(
        self,
        restart_delay: float,
        spawn: Callable[[], subprocess.Popen] = spawn_worker_process,
        stop_timeout: float = 10.0,
    ):
        self.restart_delay = restart_delay
        self.spawn = spawn
        self.stop_timeout = stop_timeout
        self.spawn_count = 0
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.RLock()  # begin_shutdown runs from signal handlers
        self._shutting_down = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down.is_set()

    @property
    def process(self) -> Optional[subprocess.Popen]:
        return self._process

    def start(self) -> None:
        """Spawn the worker and watch it from a background thread."""
        if self._thread is not None:
            return
        self._shutting_down.clear()
        self._thread = threading.Thread(target=self._monitor, name="worker-supervisor", daemon=True)
        self._thread.start()

    def _spawn_locked(self) -> Optional[subprocess.Popen]:
        with self._lock:
            if self._shutting_down.is_set():
                return None
            process = self.spawn()
            self._process = process
            self.spawn_count += 1
        logger.info(f"Polling worker started (pid={getattr(process, 'pid', 'n/a')})")
        return process

    def _monitor(self) -> None:
        while True:
            try:
                process = self._spawn_locked()
            except Exception:
                logger.exception("Could not start polling worker")
                process = None

            if process is not None:
                code = process.wait()
                logger.error(f"Polling worker exited (pid={getattr(process, 'pid', 'n/a')}, code={code})")

            if self._shutting_down.is_set():
                break
            # wait() returns True as soon as stop() is called
            if self._shutting_down.wait(self.restart_delay):
                break

    def begin_shutdown(self) -> None:
        """Mark the shutdown as intentional so an exiting worker is not respawned."""
        with self._lock:
            self._shutting_down.set()

    def stop(self) -> None:
        """Intentional shutdown: terminate the worker and do not respawn it."""
        with self._lock:
            self._shutting_down.set()
            process = self._process

        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Polling worker did not stop in time, killing it")
                process.kill()

        if self._thread is not None:
            self._thread.join(timeout=self.stop_timeout)
            self._thread = None
