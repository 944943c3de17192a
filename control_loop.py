"""Single control thread on which all session state is mutated.

Callers on any thread ``post`` work here; the loop runs it one item at a
time in arrival order, so the state machine needs no lock of its own.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Queue
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ControlLoop:
    def __init__(self, name: str = "session-control") -> None:
        self._queue: Queue[Optional[tuple[Callable[..., Any], tuple]]] = Queue()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._worker, name=name, daemon=True)
        self._thread.start()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def in_loop(self) -> bool:
        return threading.current_thread() is self._thread

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._stop_event.is_set():
            logger.debug("Control loop closed, dropping %s", getattr(fn, "__name__", fn))
            return
        self._queue.put((fn, args))

    def call_later(self, delay_s: float, fn: Callable[..., Any], *args: Any) -> threading.Timer:
        """Post ``fn`` after ``delay_s``; the returned handle's ``cancel()`` stops it."""
        timer = threading.Timer(delay_s, self.post, args=(fn, *args))
        timer.daemon = True
        timer.start()
        return timer

    def flush(self, timeout: float = 1.0) -> bool:
        """Block until everything posted before this call has run."""
        if self.in_loop():
            raise RuntimeError("flush() called from the control thread")
        done = threading.Event()
        self.post(done.set)
        return done.wait(timeout)

    def close(self, timeout: float = 1.0) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._queue.put(None)
        if not self.in_loop():
            self._thread.join(timeout=timeout)

    def _worker(self) -> None:
        while True:
            try:
                item = self._queue.get(timeout=0.2)
            except Empty:
                if self._stop_event.is_set():
                    return
                continue
            if item is None:  # Sentinel
                return
            fn, args = item
            try:
                fn(*args)
            except Exception:
                logger.exception("Unhandled error in control loop task %s", getattr(fn, "__name__", fn))
