"""Trailing-edge debounce for search input.

Each ``call`` restarts the quiet period; only the last arguments reach the
callback. ``flush`` runs a pending call immediately, which is what the pages
do on submit and what tests use instead of sleeping.
"""
from __future__ import annotations

import logging
from threading import Lock, Timer
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)


class Debouncer:
    def __init__(self, wait_seconds: float, callback: Callable[..., Any]):
        if wait_seconds < 0:
            raise ValueError("wait_seconds must be >= 0")
        self.wait_seconds = wait_seconds
        self.callback = callback
        self._lock = Lock()
        self._timer: Optional[Timer] = None
        self._args: Optional[Tuple[Any, ...]] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._args is not None

    def call(self, *args: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._args = args
            self._timer = Timer(self.wait_seconds, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Run the pending call now. Returns False when nothing was pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            args, self._args = self._args, None
        if args is None:
            return False
        self.callback(*args)
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._args = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a later call() owns the pending arguments and its own timer
            if generation != self._generation:
                return
            args, self._args = self._args, None
            self._timer = None
        if args is None:
            return
        try:
            self.callback(*args)
        except Exception:
            # runs on the timer thread; nothing above us to report to
            logger.exception("Debounced callback failed")
