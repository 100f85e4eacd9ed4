"""
Periodic refresh of the outage table.

One background thread fetches every flagged outage and hands the batch to the
store, then waits out the rest of the interval. A failed cycle is logged and
the next one starts on schedule; stopping is the only way out of the loop.
"""

import logging
import threading
import time
from enum import Enum
from typing import Protocol

from outage_monitor import metrics
from outage_monitor.errors import CycleCancelled, ErrorKind, OutageMonitorError
from outage_monitor.models import OutageRecord

log = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3600.0


class OutageSource(Protocol):
    def fetch_all(self, cancel: threading.Event | None = None) -> list[OutageRecord]: ...


class OutageSink(Protocol):
    def save_batch(self, records: list[OutageRecord]) -> None: ...


class RefresherState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class OutageRefresher:
    def __init__(
        self,
        source: OutageSource,
        sink: OutageSink,
        interval: float = DEFAULT_INTERVAL,
        stop_event: threading.Event | None = None,
        clock=time.monotonic,
    ):
        self.source = source
        self.sink = sink
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.clock = clock
        self.state = RefresherState.IDLE
        self._thread: threading.Thread | None = None

    def refresh_once(self) -> int:
        """Run one fetch-and-save cycle. Returns the number of records saved."""
        records = self.source.fetch_all(self.stop_event)
        # Nothing from a cancelled cycle reaches the store.
        if self.stop_event.is_set():
            raise CycleCancelled("stopped before save")
        self.sink.save_batch(records)
        return len(records)

    def _cycle(self):
        self.state = RefresherState.RUNNING
        started = self.clock()
        try:
            saved = self.refresh_once()
        except CycleCancelled:
            log.info("Refresh cycle cancelled")
            metrics.REFRESH_CYCLES.labels(outcome=ErrorKind.CANCELLED.value).inc()
        except OutageMonitorError as e:
            log.error(f"Refresh water outages failed ({e.kind.value}): {e}")
            metrics.REFRESH_CYCLES.labels(outcome=e.kind.value).inc()
        except Exception:
            log.exception("Refresh water outages failed unexpectedly")
            metrics.REFRESH_CYCLES.labels(outcome="unexpected").inc()
        else:
            log.info(f"Refresh cycle saved {saved} outages")
            metrics.REFRESH_CYCLES.labels(outcome="ok").inc()
            metrics.OUTAGES_SAVED.inc(saved)
            metrics.LAST_SUCCESS.set_to_current_time()
        finally:
            metrics.CYCLE_DURATION.observe(self.clock() - started)
            self.state = RefresherState.IDLE
        return started

    def run(self):
        """
        Block until stopped. The first cycle starts at once; each later one
        starts ``interval`` after the previous one began, or right after it
        finished if it overran.
        """
        log.info(f"Starting periodic refresh every {self.interval:.0f}s")
        while not self.stop_event.is_set():
            started = self._cycle()
            remaining = self.interval - (self.clock() - started)
            if remaining > 0:
                self.stop_event.wait(remaining)
        self.state = RefresherState.STOPPED
        log.info("Stopped periodic refresh")

    def start(self) -> threading.Thread:
        if self._thread is not None:
            raise RuntimeError("refresher already started")
        self._thread = threading.Thread(target=self.run, name="outage-refresher", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None):
        self.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
