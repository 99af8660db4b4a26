import asyncio
import logging
import time
from typing import Callable, Protocol

log = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Keyed, cancellable deferred callbacks. At most one live timer per key."""

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None: ...

    def cancel(self, key: str) -> bool: ...

    def now(self) -> float: ...

    def cleanup(self) -> None: ...


class AsyncioScheduler:
    """Runs callbacks on the event loop thread, one intent at a time."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._handles: dict[str, asyncio.TimerHandle] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.time()

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        self.cancel(key)

        def _fire() -> None:
            self._handles.pop(key, None)
            try:
                callback()
            except Exception:
                log.exception(f"Timer {key} failed")

        self._handles[key] = self.loop.call_later(delay, _fire)

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending(self) -> list[str]:
        return list(self._handles)

    def cleanup(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
