"""
Background loop that runs the ingestion cycle at startup and then at a
fixed interval until stopped.
"""
import logging
import threading
import time
import traceback

logger = logging.getLogger("scheduler")


class Scheduler:
    """
    Runs cycle.run() on a daemon thread, once immediately and then every
    `interval` seconds. Cycles never overlap: ticks missed while a cycle
    overruns are skipped, and run_once() skips if a cycle is in progress.
    """
    def __init__(self, cycle, interval, clock=time.monotonic):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.cycle = cycle
        self.interval = interval
        self._clock = clock
        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()
        self._thread = None
        self.cycles_run = 0
        self.ticks_skipped = 0
        self.last_results = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            raise RuntimeError("Scheduler already started")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="ingestion-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Scheduler started, interval {self.interval}s")

    def stop(self, timeout=None):
        """Stop scheduling new cycles and wait for an in-flight one to finish."""
        logger.info("Stopping scheduler")
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler thread still running after stop timeout")
                return False
        logger.info("Scheduler stopped")
        return True

    def run_once(self):
        """Run one cycle now. Returns its results, or None if skipped or failed."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Ingestion cycle already in progress, skipping")
            return None
        try:
            results = self.cycle.run()
            self.last_results = results
            return results
        except Exception as e:
            logger.error(f"Error in ingestion cycle: {e}")
            logger.error(traceback.format_exc())
            return None
        finally:
            self.cycles_run += 1
            self._cycle_lock.release()

    def _loop(self):
        next_run = self._clock()
        while not self._stop_event.is_set():
            self.run_once()

            next_run += self.interval
            now = self._clock()
            if now >= next_run:
                missed = int((now - next_run) // self.interval) + 1
                self.ticks_skipped += missed
                logger.warning(f"Ingestion cycle overran the interval, skipping {missed} tick(s)")
                next_run += missed * self.interval

            self._stop_event.wait(max(0.0, next_run - self._clock()))
