"""Run all unit tests."""
import sys
import io
import importlib
from pathlib import Path

# Fix Windows console encoding
if sys.platform == 'win32':
    # Only wrap if not already wrapped
    if not isinstance(sys.stdout, io.TextIOWrapper) or sys.stdout.encoding != 'utf-8':
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    if not isinstance(sys.stderr, io.TextIOWrapper) or sys.stderr.encoding != 'utf-8':
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

# Add test_utilities to path
sys.path.insert(0, str(Path(__file__).parent))

print("=" * 80)
print("Boss Respawn Timer - Test Suite")
print("=" * 80)
print()

# Run tests
tests = [
    ("Boss Record", "test_record", ["test_boss_record", "test_remaining_time_never_increases", "test_record_dict_shape"]),
    ("Timer Store", "test_timer_store", ["test_timer_store", "test_invalid_records_rejected", "test_sort_order",
                                         "test_start_stop_and_reset", "test_edit_keeps_timer",
                                         "test_publish_and_errors", "test_restore_from_repository"]),
    ("Tick Engine", "test_tick_engine", ["test_gatekeeper_countdown", "test_tick_survives_errors",
                                         "test_threaded_start_stop", "test_threaded_loop_keeps_running_after_errors",
                                         "test_stop_from_subscriber", "test_stop_from_mutation_subscriber",
                                         "test_stop_withholds_in_flight_snapshot", "test_invalid_interval"]),
    ("Boss Repository", "test_repository", ["test_boss_repository", "test_corrupt_store_loads_empty",
                                            "test_backups_and_restore", "test_save_failure_reported"]),
    ("Countdown Formatter", "test_countdown", ["test_countdown_formatter", "test_remaining_time_helper",
                                               "test_formatter_timezone_settings", "test_format_status"]),
    ("Settings", "test_settings", ["test_settings", "test_data_locations"]),
    ("Logging", "test_logging", ["test_logging"]),
    ("Command Line", "test_cli", ["test_cli", "test_watch", "test_render_with_manual_clock"]),
]

passed = 0
failed = 0

for test_name, test_module, test_func_names in tests:
    print(f"\nRunning {test_name} tests...")
    print("-" * 80)
    try:
        module = importlib.import_module(test_module)
        missing = [name for name in test_func_names if not hasattr(module, name)]
        if missing:
            print(f"[FAIL] {test_name} tests FAILED - test function(s) {missing} not found")
            print(f"Available functions: {[x for x in dir(module) if x.startswith('test_')]}")
            failed += 1
            continue
        for test_func_name in test_func_names:
            getattr(module, test_func_name)()
        passed += 1
        print(f"[PASS] {test_name} tests PASSED")
    except Exception as e:
        print(f"[FAIL] {test_name} tests FAILED: {e}")
        import traceback
        traceback.print_exc()
        failed += 1

print("\n" + "=" * 80)
print(f"Test Results: {passed} passed, {failed} failed")
print("=" * 80)

if failed > 0:
    sys.exit(1)
