"""Background polling for a board view."""

import logging
from threading import Event, Thread
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Poller:
    """
    Call ``callback`` every ``interval`` seconds on a daemon thread.

    Hiding the view pauses polling; showing it again polls right away.
    A failing callback is logged and polling carries on.
    """

    def __init__(self, callback: Callable[[], object], interval: float, name: str = "retroboard-poller"):
        self.callback = callback
        self.interval = interval
        self.name = name
        self._thread: Optional[Thread] = None
        self._stopped = Event()
        self._wake = Event()
        self._visible = Event()
        self._visible.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def visible(self) -> bool:
        return self._visible.is_set()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._thread = Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        self._stopped.set()
        self._wake.set()
        self._visible.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def set_visible(self, visible: bool) -> None:
        if not visible:
            self._visible.clear()
            return
        resumed = not self._visible.is_set()
        self._visible.set()
        if resumed:
            self._wake.set()

    def poll_now(self) -> None:
        self._wake.set()

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._wake.wait(self.interval)
            self._wake.clear()
            if self._stopped.is_set():
                break
            if not self._visible.is_set():
                self._visible.wait()
                self._wake.clear()
                if self._stopped.is_set():
                    break
            self._tick()

    def _tick(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("Poll callback failed")
