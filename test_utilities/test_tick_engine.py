"""Test the tick engine with a manual clock and with its real thread."""
import sys
import io
import threading
import time
from pathlib import Path

# Fix Windows console encoding (only if not already wrapped)
if sys.platform == 'win32':
    if not isinstance(sys.stdout, io.TextIOWrapper) or (hasattr(sys.stdout, 'encoding') and sys.stdout.encoding != 'utf-8'):
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')

# Add project root and src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

from boss_record import TimerPhase
from clock import ManualClock
from tick_engine import TickEngine
from timer_store import TimerStore

START = 1_700_000_000_000
FAST_TICK = 0.01


def _wait_for(condition, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return condition()


def test_gatekeeper_countdown():
    """Kill a 30 minute boss and step the clock one tick at a time."""
    print("Testing Tick Engine...")
    print("=" * 60)

    clock = ManualClock(START)
    store = TimerStore(clock=clock)
    published = []
    store.subscribe(published.append)
    engine = TickEngine(store)

    boss = store.add_boss("Gatekeeper", 30)
    store.kill(boss.id)
    published.clear()

    for _ in range(10):
        clock.advance(1000)
        engine.tick()
    assert len(published) == 10, "One snapshot per tick"
    assert published[-1].entries[0].remaining_ms == 1_790_000
    print("[OK] 10 ticks -> 1790000 ms remaining")

    for _ in range(1790):
        clock.advance(1000)
        engine.tick()
    assert published[-1].entries[0].remaining_ms == 0
    assert published[-1].entries[0].phase is TimerPhase.EXPIRED
    print("[OK] 1800 ticks -> ready")

    for _ in range(5):
        clock.advance(1000)
        engine.tick()
        assert published[-1].entries[0].remaining_ms == 0
    print("[OK] Stays at zero after expiry")

    print("\n" + "=" * 60)
    print("All tests passed!")


def test_tick_survives_errors():
    """A raising subscriber is reported and ticking carries on."""
    store = TimerStore(clock=ManualClock(START))
    errors = []
    store.add_error_handler(errors.append)
    engine = TickEngine(store)

    def broken(snapshot):
        raise ValueError("render failed")

    store.subscribe(broken)
    engine.tick()
    engine.tick()
    assert len(errors) == 2 and all(isinstance(e, ValueError) for e in errors)
    print("[OK] Subscriber errors reported per tick")

    class ExplodingStore:
        def publish(self):
            raise RuntimeError("store exploded")

        def report_error(self, error):
            errors.append(error)

    TickEngine(ExplodingStore()).tick()
    assert isinstance(errors[-1], RuntimeError)
    print("[OK] Tick never raises")


def test_threaded_start_stop():
    """The thread ticks until stopped; nothing is published after stop returns."""
    store = TimerStore(clock=ManualClock(START))
    store.add_boss("Lord Nagafen", 60)
    published = []
    store.subscribe(published.append)
    engine = TickEngine(store, interval_seconds=FAST_TICK)

    assert not engine.is_running
    engine.start()
    thread = engine._thread
    engine.start()
    assert engine._thread is thread, "Second start is a no-op"
    assert engine.is_running
    try:
        assert _wait_for(lambda: len(published) >= 3), "Engine should tick repeatedly"
    finally:
        engine.stop()
    assert not engine.is_running
    assert not thread.is_alive(), "Stop joins the tick thread"
    count = len(published)
    time.sleep(FAST_TICK * 10)
    assert len(published) == count, "No publish after stop returns"
    engine.stop()
    print("[OK] Start/stop are idempotent and stop is final")

    engine.start()
    try:
        assert _wait_for(lambda: len(published) > count), "Engine restarts"
    finally:
        engine.stop()
    print("[OK] Engine can be restarted")


def test_threaded_loop_keeps_running_after_errors():
    store = TimerStore(clock=ManualClock(START))
    errors = []
    store.add_error_handler(errors.append)
    store.subscribe(lambda snapshot: 1 / 0)
    engine = TickEngine(store, interval_seconds=FAST_TICK)
    engine.start()
    try:
        assert _wait_for(lambda: len(errors) >= 3)
        assert engine.is_running
    finally:
        engine.stop()
    assert all(isinstance(e, ZeroDivisionError) for e in errors)
    print("[OK] Loop continues after subscriber errors")


def test_stop_from_subscriber():
    """A subscriber may stop the engine from inside a tick."""
    store = TimerStore(clock=ManualClock(START))
    engine = TickEngine(store, interval_seconds=FAST_TICK)
    stopped = threading.Event()

    def stop_now(snapshot):
        engine.stop()
        stopped.set()

    store.subscribe(stop_now)
    engine.start()
    assert stopped.wait(5), "Subscriber should run"
    assert _wait_for(lambda: not engine.is_running)
    engine.stop()
    print("[OK] Stop from the tick thread does not deadlock")


def test_stop_from_mutation_subscriber():
    """A subscriber stopping the engine during another thread's mutation returns promptly."""
    store = TimerStore(clock=ManualClock(START))
    boss = store.add_boss("Lord Nagafen", 60)
    engine = TickEngine(store, interval_seconds=FAST_TICK)
    ticks = []

    def on_snapshot(snapshot):
        if threading.current_thread().name == "boss-timer-tick":
            ticks.append(snapshot)
        else:
            engine.stop()

    store.subscribe(on_snapshot)
    engine.start()
    try:
        assert _wait_for(lambda: len(ticks) >= 2), "Engine should be ticking"
        worker = threading.Thread(target=store.kill, args=(boss.id,), daemon=True)
        worker.start()
        worker.join(5)
        assert not worker.is_alive(), "kill() blocked while the engine was stopping"
    finally:
        engine.stop()
    assert not engine.is_running
    assert store.get(boss.id).timer.is_started
    print("[OK] Stop from a mutation subscriber does not deadlock")


def test_stop_withholds_in_flight_snapshot():
    """Subscribers after the one that stopped the engine do not get that tick."""
    store = TimerStore(clock=ManualClock(START))
    engine = TickEngine(store, interval_seconds=FAST_TICK)
    stopped = threading.Event()
    late = []

    def stop_now(snapshot):
        engine.stop()
        stopped.set()

    def after_stop(snapshot):
        if stopped.is_set():
            late.append(snapshot)

    store.subscribe(stop_now)
    store.subscribe(after_stop)
    engine.start()
    assert stopped.wait(5), "Subscriber should run"
    assert _wait_for(lambda: not engine.is_running)
    time.sleep(FAST_TICK * 5)
    assert late == [], "No delivery after stop returned"
    print("[OK] In-flight snapshot withheld after stop")

    engine.tick()
    assert len(late) == 1, "Manual tick still delivers after a stop"
    print("[OK] Manual tick unaffected by a previous stop")


def test_invalid_interval():
    try:
        TickEngine(TimerStore(), interval_seconds=0)
    except ValueError:
        pass
    else:
        raise AssertionError("Zero interval should be rejected")
    print("[OK] Non-positive interval rejected")


if __name__ == "__main__":
    test_gatekeeper_countdown()
    test_tick_survives_errors()
    test_threaded_start_stop()
    test_threaded_loop_keeps_running_after_errors()
    test_stop_from_subscriber()
    test_stop_from_mutation_subscriber()
    test_stop_withholds_in_flight_snapshot()
    test_invalid_interval()
