"""Debounce timer and request sequencing for superseded responses."""
import threading
from typing import Any, Callable, Dict, Optional


class Debouncer:
    """Run *func* once input has been quiet for *wait* seconds.

    Each call restarts the timer with the latest arguments.  The callback
    runs on a :class:`threading.Timer` thread.
    """

    def __init__(self, func: Callable[..., Any], wait: float) -> None:
        self._func = func
        self._wait = wait
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[tuple] = None
        self._lock = threading.Lock()

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = threading.Timer(self._wait, self._fire)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def flush(self) -> None:
        """Run the pending call now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
        self._fire()

    def _fire(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, None
            self._timer = None
        if pending is not None:
            args, kwargs = pending
            self._func(*args, **kwargs)


class RequestSequencer:
    """Hands out increasing ticket numbers per channel.

    A response is applied only while its ticket is still the newest one
    issued on that channel; anything older has been superseded.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, int] = {}
        self._lock = threading.Lock()

    def next(self, channel: str) -> int:
        with self._lock:
            ticket = self._latest.get(channel, 0) + 1
            self._latest[channel] = ticket
            return ticket

    def is_current(self, channel: str, ticket: int) -> bool:
        with self._lock:
            return self._latest.get(channel, 0) == ticket
