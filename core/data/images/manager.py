"""
core/data/images/manager.py - Periodic refresh lifecycle

CacheManager runs one refresh cycle right away, publishes its snapshot into
the ImageCache, fires the warmed signal, and then repeats every TTL until it
is cancelled or stopped.

    Idle -> Running -> (Stopped | Cancelled)

Cancel and stop both abort the cycle in flight: the collector stops issuing
upstream calls, waits for the ones already running and discards its partial
snapshot, so the previously served snapshot stays in place. The warmed
signal fires once, after the first cycle that was not cancelled.

Example:
    manager = CacheManager(ImageCollector(config.cache), cache, config.cache.ttl_seconds)
    manager.start()
    manager.wait_warmed()
    ...
    manager.stop()
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum

from core.config import settings
from core.exceptions import AlreadyRunningError, NotRunningError

from .cache import ImageCache
from .collector import ImageCollector, RefreshResult

logger = logging.getLogger(__name__)


class RunOutcome(Enum):
    """How a run() call ended"""

    STOPPED = "stopped"
    CANCELLED = "cancelled"


class CacheManager:
    """Run/stop/cancel state machine around ImageCollector"""

    def __init__(
        self,
        collector: ImageCollector,
        cache: ImageCache,
        ttl_seconds: float = settings.DEFAULT_CACHE_TTL_SECONDS,
        poll_interval: float = 0.1,
    ):
        """Initialize manager

        Args:
            collector: Refresh engine
            cache: Store that receives each finished snapshot
            ttl_seconds: Seconds between cycles, raised to the 300s floor
            poll_interval: How often the loop checks for cancel/stop while waiting
        """
        if ttl_seconds < settings.MIN_CACHE_TTL_SECONDS:
            logger.info(f"TTL {ttl_seconds}s is too low, adjusting to {settings.MIN_CACHE_TTL_SECONDS}s")
            ttl_seconds = settings.MIN_CACHE_TTL_SECONDS

        self._collector = collector
        self._cache = cache
        self._ttl = float(ttl_seconds)
        self._poll_interval = poll_interval

        self._state_lock = threading.Lock()
        self._running = False
        self._quit = threading.Event()
        self._stopped = threading.Event()
        self._warmed = threading.Event()
        self._last_result: RefreshResult | None = None
        self._thread: threading.Thread | None = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def cache(self) -> ImageCache:
        return self._cache

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    @property
    def warmed(self) -> bool:
        """True once any cycle has been published"""
        return self._warmed.is_set()

    @property
    def last_result(self) -> RefreshResult | None:
        return self._last_result

    def wait_warmed(self, timeout: float | None = None) -> bool:
        """Block until the first cycle is published, returns False on timeout"""
        return self._warmed.wait(timeout)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def run(
        self,
        cancel: threading.Event | None = None,
        warmed: threading.Event | None = None,
    ) -> RunOutcome:
        """Run the refresh loop on the calling thread

        Args:
            cancel: Set to cancel the loop and the cycle in flight
            warmed: Set once after the first published cycle of this run

        Returns:
            RunOutcome.CANCELLED or RunOutcome.STOPPED

        Raises:
            AlreadyRunningError: The loop is already running
        """
        self._begin()
        return self._run(cancel or threading.Event(), warmed)

    def start(
        self,
        warmed: threading.Event | None = None,
        cancel: threading.Event | None = None,
    ) -> threading.Thread:
        """Run the refresh loop on a daemon thread

        Raises:
            AlreadyRunningError: The loop is already running
        """
        self._begin()
        thread = threading.Thread(
            target=self._run,
            args=(cancel or threading.Event(), warmed),
            name="aq-cache-manager",
            daemon=True,
        )
        self._thread = thread
        thread.start()
        return thread

    def stop(self, timeout: float | None = None) -> bool:
        """Ask the loop to exit and wait for it to acknowledge

        Returns:
            True if the loop acknowledged within timeout

        Raises:
            NotRunningError: The loop is not running
        """
        with self._state_lock:
            if not self._running:
                raise NotRunningError()
            self._quit.set()

        logger.info("Stopping cache")
        acknowledged = self._stopped.wait(timeout)
        if not acknowledged:
            logger.warning(f"Cache did not stop within {timeout}s")
        return acknowledged

    def _begin(self) -> None:
        with self._state_lock:
            if self._running:
                raise AlreadyRunningError()
            self._running = True
            self._quit.clear()
            self._stopped.clear()

    def _run(self, cancel: threading.Event, warmed: threading.Event | None) -> RunOutcome:
        abort = threading.Event()
        done = threading.Event()
        watcher = threading.Thread(
            target=self._watch,
            args=(cancel, abort, done),
            name="aq-cancel-watch",
            daemon=True,
        )
        watcher.start()

        logger.info(f"Cache started (ttl {self._ttl:.0f}s)")
        try:
            outcome = self._loop(cancel, abort, warmed)
        finally:
            done.set()
            watcher.join()
            with self._state_lock:
                self._running = False
            self._stopped.set()

        logger.info(f"Cache {outcome.value}")
        return outcome

    def _watch(self, cancel: threading.Event, abort: threading.Event, done: threading.Event) -> None:
        # Turns a cancel or stop request into an abort of the cycle in flight
        while not done.is_set():
            if cancel.is_set() or self._quit.is_set():
                abort.set()
                return
            done.wait(self._poll_interval)

    def _loop(
        self,
        cancel: threading.Event,
        abort: threading.Event,
        warmed: threading.Event | None,
    ) -> RunOutcome:
        signalled = False
        while True:
            result = self._collector.refresh(abort)
            self._last_result = result

            if not result.cancelled and result.snapshot is not None:
                self._cache.swap(result.snapshot)
                if not signalled:
                    signalled = True
                    self._warmed.set()
                    if warmed is not None:
                        warmed.set()

            outcome = self._wait_next(cancel)
            if outcome is not None:
                return outcome

    def _wait_next(self, cancel: threading.Event) -> RunOutcome | None:
        """Sleep until the next tick, or return the outcome that ended the loop"""
        deadline = time.monotonic() + self._ttl
        while True:
            if cancel.is_set():
                return RunOutcome.CANCELLED
            if self._quit.is_set():
                return RunOutcome.STOPPED
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            self._quit.wait(min(self._poll_interval, remaining))

    def __repr__(self) -> str:
        return f"CacheManager(running={self.is_running}, warmed={self.warmed}, ttl={self._ttl:.0f}s)"
