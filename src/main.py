"""Boss Respawn Timer - command line entry point."""
import argparse
import logging
import os
import sys
import threading
from pathlib import Path
from typing import List, Optional

try:
    from .boss_repository import JsonBossRepository
    from .countdown_formatter import CountdownFormatter
    from .errors import BossTimerError, NotFoundError
    from .logger import get_logger, setup_logging
    from .settings import get_bosses_path, get_settings_path, get_user_data_dir, load_settings
    from .tick_engine import TickEngine
    from .timer_store import Snapshot, TimerStore
except ImportError:
    from boss_repository import JsonBossRepository
    from countdown_formatter import CountdownFormatter
    from errors import BossTimerError, NotFoundError
    from logger import get_logger, setup_logging
    from settings import get_bosses_path, get_settings_path, get_user_data_dir, load_settings
    from tick_engine import TickEngine
    from timer_store import Snapshot, TimerStore

logger = get_logger(__name__)

ID_DISPLAY_LENGTH = 8


class AmbiguousIdError(BossTimerError):
    """An id prefix matched more than one boss."""


class BossTimerApp:
    """Wires settings, storage, the timer store and the tick engine together."""

    def __init__(self, data_dir: Optional[Path] = None, clock=None):
        self.data_dir = Path(data_dir or get_user_data_dir())
        self.settings = load_settings(get_settings_path(self.data_dir))
        self.repository = JsonBossRepository(
            get_bosses_path(self.settings, self.data_dir),
            backup_count=self.settings["backup_count"],
        )
        self.store = TimerStore(self.repository, clock=clock)
        self.store.add_error_handler(self._on_error)
        self.formatter = CountdownFormatter(
            self.settings.get("timezone", ""),
            use_military_time=bool(self.settings.get("use_military_time", True)),
        )
        self.engine = TickEngine(self.store, interval_seconds=self.settings["tick_interval_seconds"])

    def _on_error(self, error: Exception) -> None:
        print(f"Warning: {error}", file=sys.stderr)

    def resolve_id(self, id_or_prefix: str) -> str:
        """Accept a full boss id or any unique prefix of one."""
        matches = [r.id for r in self.store.records() if r.id.startswith(id_or_prefix)]
        if id_or_prefix in matches:
            return id_or_prefix
        if not matches:
            raise NotFoundError(id_or_prefix)
        if len(matches) > 1:
            raise AmbiguousIdError(f"Id prefix '{id_or_prefix}' matches {len(matches)} bosses")
        return matches[0]

    def render(self, snapshot: Snapshot) -> List[str]:
        """Table lines for a snapshot, most urgent first."""
        if not len(snapshot):
            return ["No bosses yet. Add one with: add NAME MINUTES"]
        lines = [
            f"{'ID':<{ID_DISPLAY_LENGTH}}  {'BOSS':<24}  {'INTERVAL':>8}  {'REMAINING':>11}  {'RESPAWN':>11}  NOTES"
        ]
        for status in snapshot.entries:
            record = status.record
            lines.append(
                f"{record.id[:ID_DISPLAY_LENGTH]:<{ID_DISPLAY_LENGTH}}  "
                f"{record.name[:24]:<24}  "
                f"{str(record.interval_minutes) + 'm':>8}  "
                f"{self.formatter.format_status(status):>11}  "
                f"{self.formatter.format_clock_time(status.next_spawn_at):>11}  "
                f"{record.notes}"
            )
        return lines

    def print_snapshot(self, snapshot: Snapshot) -> None:
        print(f"-- {self.formatter.format_clock_time(snapshot.now)} --")
        for line in self.render(snapshot):
            print(line)
        sys.stdout.flush()

    def watch(self, max_ticks: Optional[int] = None) -> None:
        """Print a snapshot every tick until interrupted (or after ``max_ticks`` ticks)."""
        done = threading.Event()
        ticks = {"count": 0}

        def on_snapshot(snapshot: Snapshot) -> None:
            self.print_snapshot(snapshot)
            ticks["count"] += 1
            if max_ticks is not None and ticks["count"] >= max_ticks:
                done.set()

        self.store.subscribe(on_snapshot)
        self.engine.start()
        try:
            while not done.wait(0.5):
                pass
        except KeyboardInterrupt:
            print()
        finally:
            self.engine.stop()
            self.store.unsubscribe(on_snapshot)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Boss Respawn Timer')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging (verbose)')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Set logging level (DEBUG, INFO, WARNING, ERROR)')
    parser.add_argument('--data-dir', type=Path,
                        help='Directory holding settings.json, bosses.json and logs')

    sub = parser.add_subparsers(dest='command')
    sub.add_parser('list', help='Show bosses sorted by time until respawn')

    add = sub.add_parser('add', help='Add a boss')
    add.add_argument('name')
    add.add_argument('minutes', type=int, help='Respawn interval in minutes')
    add.add_argument('--notes', default='')

    edit = sub.add_parser('edit', help='Change a boss name, interval or notes')
    edit.add_argument('id')
    edit.add_argument('--name')
    edit.add_argument('--minutes', type=int)
    edit.add_argument('--notes')

    for name, help_text in (
        ('kill', 'Record a kill now (restarts the full interval)'),
        ('start', 'Start a timer that is not already running'),
        ('stop', 'Clear one timer'),
        ('delete', 'Remove a boss'),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument('id', help='Boss id or unique id prefix')

    sub.add_parser('reset', help='Clear every timer')

    watch = sub.add_parser('watch', help='Live countdown, refreshed every tick')
    watch.add_argument('--ticks', type=int, help='Exit after this many refreshes')

    sub.add_parser('backups', help='List bosses.json backups')
    restore = sub.add_parser('restore', help='Restore bosses.json from a backup file')
    restore.add_argument('path', type=Path)
    return parser


def _resolve_log_level(args: argparse.Namespace) -> int:
    log_level = logging.INFO
    if args.debug or os.getenv('BOSS_TIMER_DEBUG', '').lower() in ('1', 'true', 'yes'):
        log_level = logging.DEBUG
    elif args.log_level:
        log_level = getattr(logging, args.log_level)
    elif os.getenv('BOSS_TIMER_LOG_LEVEL'):
        level_str = os.getenv('BOSS_TIMER_LOG_LEVEL').upper()
        if isinstance(getattr(logging, level_str, None), int):
            log_level = getattr(logging, level_str)
    return log_level


def run_command(app: BossTimerApp, args: argparse.Namespace) -> int:
    """Execute one parsed command against ``app``. Returns the process exit code."""
    store = app.store
    command = args.command or 'list'

    if command == 'list':
        app.print_snapshot(store.snapshot())
    elif command == 'add':
        record = store.add_boss(args.name, args.minutes, args.notes)
        print(f"Added '{record.name}' ({record.id[:ID_DISPLAY_LENGTH]})")
    elif command == 'edit':
        record = store.edit(app.resolve_id(args.id), name=args.name,
                            interval_minutes=args.minutes, notes=args.notes)
        print(f"Updated '{record.name}'")
    elif command == 'kill':
        record = store.kill(app.resolve_id(args.id))
        print(f"Kill recorded for '{record.name}', respawn at "
              f"{app.formatter.format_clock_time(record.next_spawn_at())}")
    elif command == 'start':
        record = store.start(app.resolve_id(args.id))
        print(f"Timer running for '{record.name}'")
    elif command == 'stop':
        record = store.stop(app.resolve_id(args.id))
        print(f"Timer cleared for '{record.name}'")
    elif command == 'delete':
        boss_id = app.resolve_id(args.id)
        store.delete(boss_id)
        print(f"Deleted {boss_id[:ID_DISPLAY_LENGTH]}")
    elif command == 'reset':
        store.reset_all()
        print(f"Reset {len(store)} timer(s)")
    elif command == 'watch':
        app.watch(max_ticks=args.ticks)
    elif command == 'backups':
        backups = app.repository.list_backups()
        if not backups:
            print("No backups found.")
        for backup in backups:
            print(backup)
    elif command == 'restore':
        if not app.repository.restore_backup(args.path):
            print(f"Could not restore from {args.path}", file=sys.stderr)
            return 1
        print(f"Restored from {args.path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    data_dir = args.data_dir or get_user_data_dir()
    setup_logging(Path(data_dir) / "logs", log_level=_resolve_log_level(args))
    logger.debug(f"Command: {args.command or 'list'} (data dir: {data_dir})")

    app = BossTimerApp(data_dir)
    try:
        return run_command(app, args)
    except BossTimerError as e:
        logger.warning(f"Command '{args.command}' rejected: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
