"""In-memory owner of the boss record set.

:class:`TimerStore` holds every :class:`BossRecord`, applies mutations,
writes the full set through to a persistence adapter after each change and
pushes sorted :class:`Snapshot` objects to subscribers.
"""
import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

try:
    from .boss_record import BossRecord, TimerPhase
    from .clock import SystemClock
    from .errors import InvalidRecordError, NotFoundError, PersistenceError
    from .logger import get_logger
except ImportError:
    from boss_record import BossRecord, TimerPhase
    from clock import SystemClock
    from errors import InvalidRecordError, NotFoundError, PersistenceError
    from logger import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class BossStatus:
    """One record as seen at the snapshot instant."""
    record: BossRecord
    remaining_ms: Optional[int]
    phase: TimerPhase
    next_spawn_at: Optional[int]

    @property
    def is_ready(self) -> bool:
        return self.phase is TimerPhase.EXPIRED

@dataclass(frozen=True)
class Snapshot:
    """Immutable, sorted view of all records at time ``now``."""
    now: int
    entries: Tuple[BossStatus, ...]

    @property
    def records(self) -> Tuple[BossRecord, ...]:
        return tuple(entry.record for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]

def build_snapshot(records: Sequence[BossRecord], now: int) -> Snapshot:
    """
    Sort ``records`` by urgency at ``now``.

    Started timers come first by ascending remaining time (expired ones at 0
    lead); timers that were never started follow. Python's sort is stable,
    so equal keys keep insertion order.
    """
    statuses = [
        BossStatus(
            record=record,
            remaining_ms=record.remaining_ms(now),
            phase=record.phase_at(now),
            next_spawn_at=record.next_spawn_at(),
        )
        for record in records
    ]
    statuses.sort(key=lambda s: (s.remaining_ms is None, s.remaining_ms or 0))
    return Snapshot(now=now, entries=tuple(statuses))

class TimerStore:
    """Owns the boss records and every mutation applied to them."""

    def __init__(self, repository=None, clock=None):
        """
        Args:
            repository: Persistence adapter with ``load()`` and ``save(records)``;
                        None keeps everything in memory
            clock: Time source with ``now_ms()``; defaults to the system clock
        """
        self.repository = repository
        self.clock = clock or SystemClock()
        self._records: List[BossRecord] = []
        self._lock = threading.RLock()
        self._subscribers: List[SnapshotCallback] = []
        self._error_handlers: List[ErrorCallback] = []

        if repository is not None:
            self._load()

    def _load(self) -> None:
        """Restore the persisted record set, dropping entries the store would reject."""
        loaded = self.repository.load()
        seen = set()
        for record in loaded:
            try:
                record.validate()
            except InvalidRecordError as e:
                logger.warning(f"[STORE] Ignoring invalid persisted boss '{getattr(record, 'name', '?')}': {e}")
                continue
            if record.id in seen:
                logger.warning(f"[STORE] Ignoring duplicate persisted boss id {record.id}")
                continue
            seen.add(record.id)
            self._records.append(record)
        logger.info(f"[STORE] Restored {len(self._records)} boss(es)")

    # ------------------------------------------------------------------
    # Subscribers and error channel

    def subscribe(self, callback: SnapshotCallback) -> None:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: SnapshotCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def add_error_handler(self, callback: ErrorCallback) -> None:
        with self._lock:
            if callback not in self._error_handlers:
                self._error_handlers.append(callback)

    def report_error(self, error: Exception) -> None:
        """Forward a non-fatal error to every error handler."""
        for handler in list(self._error_handlers):
            try:
                handler(error)
            except Exception as e:
                logger.error(f"[STORE] Error handler {handler!r} failed: {e}", exc_info=True)

    def publish(self, cancelled: Optional[Callable[[], bool]] = None) -> Snapshot:
        """
        Build a fresh snapshot and deliver it to every subscriber.

        The snapshot is taken under the lock but delivered after releasing it,
        so a subscriber may mutate the store or stop the tick engine. Delivery
        ends early once ``cancelled()`` returns True.
        """
        with self._lock:
            snapshot = build_snapshot(self._records, self.clock.now_ms())
            subscribers = list(self._subscribers)
        for callback in subscribers:
            if cancelled is not None and cancelled():
                logger.debug("[STORE] Snapshot delivery cancelled")
                break
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"[STORE] Snapshot subscriber {callback!r} raised: {e}", exc_info=True)
                self.report_error(e)
        return snapshot

    # ------------------------------------------------------------------
    # Queries

    def snapshot(self) -> Snapshot:
        with self._lock:
            return build_snapshot(self._records, self.clock.now_ms())

    def records(self) -> Tuple[BossRecord, ...]:
        """All records in insertion order."""
        with self._lock:
            return tuple(self._records)

    def get(self, boss_id: str) -> BossRecord:
        with self._lock:
            return self._records[self._index_of(boss_id)]

    def find(self, boss_id: str) -> Optional[BossRecord]:
        with self._lock:
            for record in self._records:
                if record.id == boss_id:
                    return record
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _index_of(self, boss_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == boss_id:
                return index
        raise NotFoundError(boss_id)

    # ------------------------------------------------------------------
    # Mutations
    #
    # Each mutation changes the record set and writes it through while holding
    # the lock, then publishes once the lock is released.

    def add_or_update(self, record: BossRecord) -> BossRecord:
        """Replace the record with the same id, or append it if the id is new."""
        record.validate()
        with self._lock:
            self._put(record)
            self._persist()
        self.publish()
        return record

    def add_boss(self, name: str, interval_minutes: int, notes: str = "") -> BossRecord:
        """Create a boss with a new id and add it to the set."""
        return self.add_or_update(BossRecord.create(name, interval_minutes, notes))

    def edit(self, boss_id: str, name: Optional[str] = None,
             interval_minutes: Optional[int] = None, notes: Optional[str] = None) -> BossRecord:
        """Change a boss's name, interval or notes. Timing state is kept."""
        with self._lock:
            current = self._records[self._index_of(boss_id)]
            changes = {}
            if name is not None:
                changes['name'] = name.strip() if isinstance(name, str) else name
            if interval_minutes is not None:
                changes['interval_minutes'] = interval_minutes
            if notes is not None:
                changes['notes'] = notes
            record = replace(current, **changes)
            record.validate()
            self._put(record)
            self._persist()
        self.publish()
        return record

    def delete(self, boss_id: str) -> None:
        """Remove a boss. Unknown ids are ignored."""
        with self._lock:
            try:
                index = self._index_of(boss_id)
            except NotFoundError:
                logger.debug(f"[STORE] Delete ignored, no boss with id {boss_id}")
                return
            removed = self._records.pop(index)
            logger.info(f"[STORE] Deleted boss '{removed.name}'")
            self._persist()
        self.publish()

    def kill(self, boss_id: str) -> BossRecord:
        """Record a kill now: the full respawn interval starts counting down."""
        with self._lock:
            record = self._kill_at(self._index_of(boss_id))
            self._persist()
        self.publish()
        return record

    def start(self, boss_id: str) -> BossRecord:
        """Start a boss's timer unless it is already counting down."""
        with self._lock:
            index = self._index_of(boss_id)
            record = self._records[index]
            if record.phase_at(self.clock.now_ms()) is TimerPhase.RUNNING:
                logger.debug(f"[STORE] Timer for '{record.name}' already running")
                return record
            record = self._kill_at(index)
            self._persist()
        self.publish()
        return record

    def stop(self, boss_id: str) -> BossRecord:
        """Clear one boss's timer back to not started."""
        with self._lock:
            index = self._index_of(boss_id)
            record = self._records[index].cleared()
            self._records[index] = record
            logger.info(f"[STORE] Timer cleared for '{record.name}'")
            self._persist()
        self.publish()
        return record

    def reset_all(self) -> None:
        """Clear every timer back to not started."""
        with self._lock:
            self._records = [record.cleared() for record in self._records]
            logger.info(f"[STORE] Reset timers for {len(self._records)} boss(es)")
            self._persist()
        self.publish()

    def _put(self, record: BossRecord) -> None:
        try:
            index = self._index_of(record.id)
        except NotFoundError:
            self._records.append(record)
            logger.info(f"[STORE] Added boss '{record.name}' ({record.interval_minutes} min)")
        else:
            self._records[index] = record
            logger.info(f"[STORE] Updated boss '{record.name}' ({record.interval_minutes} min)")

    def _kill_at(self, index: int) -> BossRecord:
        record = self._records[index].killed_at(self.clock.now_ms())
        self._records[index] = record
        logger.info(f"[STORE] Kill recorded for '{record.name}', respawn in {record.interval_minutes} min")
        return record

    def _persist(self) -> None:
        """Write the set through to storage. Must hold the lock."""
        if self.repository is None:
            return
        try:
            saved = self.repository.save(list(self._records))
        except Exception as e:
            logger.error(f"[STORE] Save raised: {e}", exc_info=True)
            self.report_error(PersistenceError(f"Saving boss timers failed: {e}"))
            return
        if saved is False:
            logger.error("[STORE] Save failed - in-memory timers are ahead of stored data")
            self.report_error(PersistenceError("Saving boss timers failed"))
