"""Drive the countdown forward once per tick."""
import threading
import time
from typing import Callable, Optional

try:
    from .logger import get_logger
except ImportError:
    from logger import get_logger

logger = get_logger(__name__)

DEFAULT_TICK_SECONDS = 1.0


class TickEngine:
    """Publishes a fresh snapshot from a :class:`TimerStore` at a fixed cadence."""

    def __init__(self, store, interval_seconds: float = DEFAULT_TICK_SECONDS,
                 on_error: Optional[Callable[[Exception], None]] = None):
        """
        Args:
            store: The TimerStore whose snapshot is republished every tick
            interval_seconds: Tick period (1 second in normal use)
            on_error: Error channel for failed ticks; defaults to the store's handlers
        """
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive")
        self.store = store
        self.interval_seconds = interval_seconds
        self.on_error = on_error or store.report_error
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Start ticking. Does nothing if already running."""
        with self._state_lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="boss-timer-tick", daemon=True
            )
            self._thread.start()
        logger.info(f"[TICK] Tick engine started ({self.interval_seconds}s interval)")

    def stop(self) -> None:
        """
        Stop ticking and wait for the tick thread to exit.

        Once this returns no further snapshot is published by the engine. When
        called from a subscriber on the tick thread it does not join; the
        snapshot being delivered is withheld from the subscribers still to be
        called. Does nothing if already stopped.
        """
        with self._state_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            self._thread = None
        if thread is not threading.current_thread():
            thread.join()
        logger.info("[TICK] Tick engine stopped")

    def tick(self) -> None:
        """Recompute remaining times and publish one snapshot. Never raises."""
        self._tick()

    def _tick(self, stop_event: Optional[threading.Event] = None) -> None:
        try:
            if stop_event is None:
                self.store.publish()
            else:
                self.store.publish(cancelled=stop_event.is_set)
        except Exception as e:
            logger.error(f"[TICK] Error during tick: {e}", exc_info=True)
            try:
                self.on_error(e)
            except Exception as handler_error:
                logger.error(f"[TICK] Error channel failed: {handler_error}", exc_info=True)

    def _run(self, stop_event: threading.Event) -> None:
        next_tick = time.monotonic() + self.interval_seconds
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self._tick(stop_event)
            next_tick += self.interval_seconds
            now = time.monotonic()
            if next_tick < now:
                # Fell behind (suspend, slow subscriber): skip missed ticks
                next_tick = now + self.interval_seconds
