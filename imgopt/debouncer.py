"""
Debouncer - Coalesces file-change notifications into one regeneration pass.
"""

import logging
import threading
from typing import Callable, Optional, Set

from .paths import is_supported_image

DEBOUNCE_SECONDS = 0.3

QUALIFYING_EVENTS = frozenset({
    'create', 'created', 'add', 'modify', 'modified', 'change', 'changed',
})


class DebounceTimer:
    """
    Fire-once timer that restarts on every schedule() call.

    The timer measures quiet time: each schedule() cancels the pending
    timer and starts a new one.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        timer_factory: Callable = threading.Timer
    ):
        """
        Args:
            delay: Quiet period in seconds
            callback: Called once the quiet period elapses
            timer_factory: Callable(delay, fn) returning an object with
                start() and cancel(); threading.Timer by default
        """
        self.delay = delay
        self.callback = callback
        self.timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        """(Re)start the quiet period."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._timer = self.timer_factory(self.delay, lambda: self._fire(generation))
            if hasattr(self._timer, 'daemon'):
                self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a timer cancelled after it started running must not fire
            if generation != self._generation:
                return
            self._timer = None
        self.callback()


class ChangeDebouncer:
    """
    Collects changed originals and regenerates them after a quiet period.
    """

    def __init__(
        self,
        process_image: Callable[[str], object],
        persist: Callable[[], None],
        delay: float = DEBOUNCE_SECONDS,
        timer_factory: Callable = threading.Timer,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            process_image: Regenerates one original by relative path
            persist: Saves the manifest once per drained batch
            delay: Quiet period in seconds
            timer_factory: Timer constructor (injectable for tests)
            logger: Optional logger instance
        """
        self.process_image = process_image
        self.persist = persist
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Set[str] = set()
        self._lock = threading.Lock()
        self.timer = DebounceTimer(delay, self.flush, timer_factory=timer_factory)

    @property
    def pending(self) -> Set[str]:
        with self._lock:
            return set(self._pending)

    def notify(self, event_kind: str, relative_path: str, absolute_path: Optional[str] = None) -> bool:
        """
        Record a file-change notification.

        Returns:
            True if the change was queued for regeneration
        """
        if not is_supported_image(relative_path):
            return False
        if (event_kind or '').lower() not in QUALIFYING_EVENTS:
            self.logger.debug(f"Ignoring {event_kind} event for {relative_path}")
            return False

        self.logger.info(f"File {event_kind}: {relative_path}")
        with self._lock:
            self._pending.add(relative_path)
        self.timer.schedule()
        return True

    def flush(self) -> int:
        """
        Drain the pending set and regenerate each path unconditionally.

        Returns:
            Number of originals processed
        """
        with self._lock:
            paths, self._pending = self._pending, set()

        if not paths:
            return 0

        for path in sorted(paths):
            try:
                self.process_image(path)
            except Exception as e:
                self.logger.error(f"Failed to regenerate {path}: {e}")

        try:
            self.persist()
        except OSError as e:
            self.logger.error(f"Failed to write manifest: {e}")

        return len(paths)

    def close(self) -> None:
        self.timer.cancel()
