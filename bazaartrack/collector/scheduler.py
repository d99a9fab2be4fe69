"""Fixed-rate timer driving the collector."""

import logging
import threading
import time
from typing import Callable, Optional

from bazaartrack.collector.collector import Collector
from bazaartrack.models import CollectionRun

logger = logging.getLogger(__name__)

# Production polling cadence
DEFAULT_INTERVAL_SECONDS = 300.0


class CollectionScheduler:
    """Fires a collector tick every ``interval_seconds``.

    Each tick runs on its own worker thread, so a slow run does not delay
    the timer; overlapping ticks are skipped by the collector itself.
    """

    def __init__(
        self,
        collector: Collector,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        on_run: Optional[Callable[[CollectionRun], None]] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.collector = collector
        self.interval_seconds = interval_seconds
        self.on_run = on_run
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the timer thread. The first tick fires immediately."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="bazaartrack-scheduler", daemon=True
        )
        self._thread.start()
        logger.info("Collector scheduled every %.0f seconds", self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the timer. In-flight runs finish on their own."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_forever(self) -> None:
        """Run until interrupted with Ctrl-C."""
        self.start()
        try:
            while self.running:
                self._stop.wait(1.0)
        except KeyboardInterrupt:
            logger.info("Stopping collector")
        finally:
            self.stop()

    def _loop(self) -> None:
        next_at = time.monotonic()
        while not self._stop.is_set():
            self._fire()
            next_at += self.interval_seconds
            if self._stop.wait(max(0.0, next_at - time.monotonic())):
                break

    def _fire(self) -> None:
        worker = threading.Thread(
            target=self._run_tick, name="bazaartrack-collect", daemon=True
        )
        worker.start()

    def _run_tick(self) -> None:
        run = self.collector.tick()
        if self.on_run is not None:
            try:
                self.on_run(run)
            except Exception:
                logger.exception("Run callback failed")
