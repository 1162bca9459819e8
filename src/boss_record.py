"""Boss records and their respawn timer state."""
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

try:
    from .errors import InvalidRecordError
except ImportError:
    from errors import InvalidRecordError

MS_PER_MINUTE = 60_000


class TimerPhase(Enum):
    """Where a boss timer currently stands."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TimerState:
    """
    Tagged timer state.

    A state with no ``started_at`` is NOT_STARTED. Otherwise the timer is
    running from ``started_at`` with ``remaining_at_start`` milliseconds left
    at that instant; once those have elapsed it reads as EXPIRED.
    """
    started_at: Optional[int] = None
    remaining_at_start: Optional[int] = None

    @classmethod
    def not_started(cls) -> "TimerState":
        return cls()

    @classmethod
    def running(cls, started_at: int, remaining_at_start: int) -> "TimerState":
        return cls(started_at=int(started_at), remaining_at_start=max(0, int(remaining_at_start)))

    @property
    def is_started(self) -> bool:
        return self.started_at is not None

    def remaining_ms(self, now: int) -> Optional[int]:
        """Remaining milliseconds at ``now``, clamped at 0. None if not started."""
        if not self.is_started:
            return None
        elapsed = now - self.started_at
        return max(0, self.remaining_at_start - max(0, elapsed))

    def phase_at(self, now: int) -> TimerPhase:
        remaining = self.remaining_ms(now)
        if remaining is None:
            return TimerPhase.NOT_STARTED
        if remaining <= 0:
            return TimerPhase.EXPIRED
        return TimerPhase.RUNNING

    def to_dict(self) -> Optional[Dict[str, int]]:
        if not self.is_started:
            return None
        return {'started_at': self.started_at, 'remaining_at_start': self.remaining_at_start}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TimerState":
        if data is None:
            return cls.not_started()
        if not isinstance(data, dict):
            raise InvalidRecordError(f"Timer state must be an object or null, got {type(data).__name__}")
        started_at = data.get('started_at')
        remaining = data.get('remaining_at_start')
        if not _is_int(started_at) or not _is_int(remaining):
            raise InvalidRecordError(f"Timer state has invalid fields: {data!r}")
        return cls.running(started_at, remaining)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class BossRecord:
    """A boss whose respawn is being timed."""
    id: str
    name: str
    interval_minutes: int
    notes: str = ""
    timer: TimerState = field(default_factory=TimerState.not_started)

    @classmethod
    def create(cls, name: str, interval_minutes: int, notes: str = "") -> "BossRecord":
        """Build a new, validated record with a freshly assigned id."""
        record = cls(
            id=uuid.uuid4().hex,
            name=name.strip() if isinstance(name, str) else name,
            interval_minutes=interval_minutes,
            notes=notes or "",
        )
        record.validate()
        return record

    def validate(self) -> None:
        """Raise InvalidRecordError unless the record may enter the record set."""
        if not isinstance(self.id, str) or not self.id:
            raise InvalidRecordError("Boss id cannot be empty")
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidRecordError("Boss name cannot be empty")
        if not _is_int(self.interval_minutes) or self.interval_minutes <= 0:
            raise InvalidRecordError(
                f"Respawn interval must be a positive number of minutes, got {self.interval_minutes!r}"
            )
        if not isinstance(self.notes, str):
            raise InvalidRecordError("Notes must be text")

    @property
    def interval_ms(self) -> int:
        return self.interval_minutes * MS_PER_MINUTE

    def remaining_ms(self, now: int) -> Optional[int]:
        return self.timer.remaining_ms(now)

    def phase_at(self, now: int) -> TimerPhase:
        return self.timer.phase_at(now)

    def is_ready(self, now: int) -> bool:
        return self.timer.phase_at(now) is TimerPhase.EXPIRED

    def next_spawn_at(self) -> Optional[int]:
        """Absolute time (ms) at which the boss respawns, or None if not started."""
        if not self.timer.is_started:
            return None
        return self.timer.started_at + self.timer.remaining_at_start

    def killed_at(self, now: int) -> "BossRecord":
        """Copy of this record with a full interval starting at ``now``."""
        return replace(self, timer=TimerState.running(now, self.interval_ms))

    def cleared(self) -> "BossRecord":
        return replace(self, timer=TimerState.not_started())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'interval_minutes': self.interval_minutes,
            'notes': self.notes,
            'timer': self.timer.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BossRecord":
        """Rebuild a record from its persisted form. Raises InvalidRecordError if malformed."""
        if not isinstance(data, dict):
            raise InvalidRecordError(f"Boss entry must be an object, got {type(data).__name__}")
        record = cls(
            id=data.get('id'),
            name=data.get('name'),
            interval_minutes=data.get('interval_minutes'),
            notes=data.get('notes') or "",
            timer=TimerState.from_dict(data.get('timer')),
        )
        record.validate()
        return record
