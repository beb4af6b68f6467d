"""Scoped polling for API consumers.

The customer and rider apps refresh order detail, live location and the
rider board by polling.  ``PollingSession`` owns one such loop:

    with PollingSession(fetch_live_location, config.location_interval,
                        is_final=lambda answer: answer["state"] == "closed") as poll:
        ...
        render(poll.latest)

The loop runs on a daemon thread, stops by itself once ``is_final`` accepts
a result and is always stopped and joined when the ``with`` block exits.
A fetch that raises is logged and skipped; ``latest`` keeps the last good
result and the next tick tries again.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

import structlog
from django.conf import settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollingConfig:
    """Poll intervals in milliseconds, one per screen."""

    order_poll_interval_ms: int = 15000
    location_poll_interval_ms: int = 10000
    rider_orders_poll_interval_ms: int = 8000

    @classmethod
    def from_settings(cls) -> PollingConfig:
        return cls(
            order_poll_interval_ms=settings.ORDER_POLL_INTERVAL_MS,
            location_poll_interval_ms=settings.LOCATION_POLL_INTERVAL_MS,
            rider_orders_poll_interval_ms=settings.RIDER_ORDERS_POLL_INTERVAL_MS,
        )

    @property
    def order_interval(self) -> float:
        return self.order_poll_interval_ms / 1000

    @property
    def location_interval(self) -> float:
        return self.location_poll_interval_ms / 1000

    @property
    def rider_orders_interval(self) -> float:
        return self.rider_orders_poll_interval_ms / 1000

    def as_dict(self) -> dict:
        return {
            "order_poll_interval_ms": self.order_poll_interval_ms,
            "location_poll_interval_ms": self.location_poll_interval_ms,
            "rider_orders_poll_interval_ms": self.rider_orders_poll_interval_ms,
        }


class PollingSession(Generic[T]):
    """Run ``fetch`` every ``interval`` seconds until final or closed."""

    def __init__(
        self,
        fetch: Callable[[], T],
        interval: float,
        is_final: Optional[Callable[[T], bool]] = None,
        on_update: Optional[Callable[[T], None]] = None,
        name: str = "poll",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._fetch = fetch
        self._interval = interval
        self._is_final = is_final or (lambda result: False)
        self._on_update = on_update
        self._name = name
        self._stop = threading.Event()
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._latest: Optional[T] = None
        self.polls = 0
        self.failures = 0

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    def __enter__(self) -> PollingSession[T]:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"polling session {self._name!r} already started")
        self._thread = threading.Thread(
            target=self._run, name=f"polling-{self._name}", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def latest(self) -> Optional[T]:
        with self._lock:
            return self._latest

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop ends; ``False`` on timeout."""
        return self._done.wait(timeout)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _run(self) -> None:
        log = logger.bind(session=self._name)
        try:
            while not self._stop.is_set():
                if self._tick(log):
                    log.debug("polling.final_result")
                    break
                self._stop.wait(self._interval)
        finally:
            self._done.set()

    def _tick(self, log) -> bool:
        self.polls += 1
        try:
            result = self._fetch()
        except Exception as exc:
            # The previous result stays displayed; retry on the next tick.
            self.failures += 1
            log.warning("polling.fetch_failed", error=str(exc), failures=self.failures)
            return False

        with self._lock:
            self._latest = result
        if self._on_update is not None:
            self._on_update(result)
        return bool(self._is_final(result))
