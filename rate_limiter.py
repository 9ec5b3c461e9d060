"""
Single-lane outbound call queue.

Every call to an upstream (Yahoo, NSE) goes through one RateLimiter so the
public endpoints never see more than one request per `min_delay` seconds
from this process, no matter how many Flask threads are asking.
"""
import logging
import queue
import threading
import time
from concurrent.futures import Future

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, min_delay=0.5, name="outbound", clock=time.monotonic, sleep=time.sleep):
        self.min_delay = min_delay
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._queue = queue.Queue()
        self._lock = threading.Lock()
        self._worker = None
        self._last_start = None
        self.calls_made = 0

    @property
    def pending(self):
        return self._queue.qsize()

    def submit(self, fn, *args, **kwargs):
        """Queue `fn(*args, **kwargs)` and return a Future for its result."""
        future = Future()
        self._queue.put((future, fn, args, kwargs))
        self._ensure_worker()
        return future

    def call(self, fn, *args, **kwargs):
        """Queue a call and block until it has run. Exceptions propagate."""
        return self.submit(fn, *args, **kwargs).result()

    def _ensure_worker(self):
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name=f"ratelimiter-{self.name}", daemon=True
                )
                self._worker.start()

    def _run(self):
        while True:
            future, fn, args, kwargs = self._queue.get()
            try:
                if not future.set_running_or_notify_cancel():
                    continue
                self._wait_turn()
                try:
                    result = fn(*args, **kwargs)
                except Exception as e:
                    future.set_exception(e)
                else:
                    future.set_result(result)
            finally:
                self._queue.task_done()

    def _wait_turn(self):
        if self._last_start is not None:
            remaining = self.min_delay - (self._clock() - self._last_start)
            if remaining > 0:
                logger.debug(f"[{self.name}] waiting {remaining:.2f}s ({self.pending} queued)")
                self._sleep(remaining)
        self._last_start = self._clock()
        self.calls_made += 1
