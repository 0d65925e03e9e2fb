"""Per-key debouncing of save calls."""

import logging
from threading import Lock, Timer
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delay ``action(key, value)`` until ``delay`` seconds pass without a new
    value for the same key.

    Only the latest value per key is kept and it is read when the timer
    fires, so a burst of edits produces one call carrying the final value.
    """

    def __init__(self, action: Callable[[Hashable, Any], None], delay: float):
        self.action = action
        self.delay = delay
        self._lock = Lock()
        # key -> (generation, latest value, timer)
        self._slots: Dict[Hashable, Tuple[int, Any, Timer]] = {}
        self._generation = 0

    def submit(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            previous = self._slots.get(key)
            if previous is not None:
                previous[2].cancel()
            timer = Timer(self.delay, self._fire, args=(key, generation))
            timer.daemon = True
            self._slots[key] = (generation, value, timer)
            timer.start()

    def _fire(self, key: Hashable, generation: int) -> None:
        with self._lock:
            slot = self._slots.get(key)
            # A newer submit replaced this timer
            if slot is None or slot[0] != generation:
                return
            del self._slots[key]
            value = slot[1]
        self._run(key, value)

    def _run(self, key: Hashable, value: Any) -> None:
        try:
            self.action(key, value)
        except Exception:
            logger.exception("Debounced action failed for %s", key)

    def pending(self, key: Optional[Hashable] = None) -> bool:
        with self._lock:
            if key is None:
                return bool(self._slots)
            return key in self._slots

    def cancel(self, key: Hashable) -> None:
        with self._lock:
            slot = self._slots.pop(key, None)
        if slot is not None:
            slot[2].cancel()

    def flush(self) -> None:
        """Run every pending action now, in submission order."""
        with self._lock:
            slots = sorted(self._slots.items(), key=lambda item: item[1][0])
            self._slots.clear()
        for key, (_, value, timer) in slots:
            timer.cancel()
            self._run(key, value)
