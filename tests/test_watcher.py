import shutil
import threading
import time

import pytest

import watchservice
from watchservice import DirectoryWatcher, RegistrationError

EVENT_TIMEOUT = 5.0


def test_not_ready_before_start(watched_dir):
    w = DirectoryWatcher(watched_dir)
    assert not w.is_ready()
    assert not w.is_alive()
    assert w.wait_until_ready(timeout=0.05) is False


def test_nonexistent_directory(tmp_path):
    with pytest.raises(RegistrationError):
        DirectoryWatcher(tmp_path / "missing").start()


def test_ready_after_start_and_stays_ready(make_watcher, watched_dir, observer_config):
    w = make_watcher(watched_dir, observer_config).start()
    assert w.is_ready()
    assert w.wait_until_ready(timeout=0)

    w.stop()
    assert w.join(timeout=EVENT_TIMEOUT)
    assert w.is_ready()


def test_no_event_without_changes(make_watcher, watched_dir, observer_config):
    w = make_watcher(watched_dir, observer_config).start()
    assert w.wait_for_event(timeout=0.5) is False


def test_detects_creation(make_watcher, watched_dir, observer_config):
    w = make_watcher(watched_dir, observer_config).start()

    (watched_dir / "created.txt").write_text("new file")

    assert w.wait_for_event(timeout=EVENT_TIMEOUT)


def test_file_operation_scenario(make_watcher, watched_dir, observer_config):
    """Each operation releases the waiter; nothing hangs."""
    w = make_watcher(watched_dir, observer_config).start()
    file1 = watched_dir / "TestFile1.txt"
    file2 = watched_dir / "TestFile2.txt"

    file1.write_text("This is a test 1\n")
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    with open(file1, "a") as f:
        f.write("This is another test\n")
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    file2.write_text("This is a test 2\n")
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    shutil.copyfile(file1, file2)
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    file1.replace(file2)
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    file2.unlink()
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    start = time.monotonic()
    w.stop()
    assert w.join(timeout=EVENT_TIMEOUT)
    assert time.monotonic() - start < EVENT_TIMEOUT


def test_each_operation_wakes_once(make_watcher, watched_dir, fast_config):
    """A single operation is reported by exactly one wakeup."""
    fast_config.batch_latency = 0.2
    settle = 2 * fast_config.batch_latency + 0.3
    w = make_watcher(watched_dir, fast_config).start()
    file1 = watched_dir / "TestFile1.txt"
    file2 = watched_dir / "TestFile2.txt"

    def append():
        with open(file1, "a") as f:
            f.write("This is another test\n")

    operations = [
        lambda: file1.write_text("This is a test 1\n"),
        append,
        lambda: file2.write_text("This is a test 2\n"),
        lambda: shutil.copyfile(file1, file2),
        lambda: file1.replace(file2),
        lambda: file2.unlink(),
    ]

    for operation in operations:
        operation()
        assert w.wait_for_event(timeout=EVENT_TIMEOUT)
        assert w.wait_for_event(timeout=settle) is False


def test_callback_reports_names(make_watcher, watched_dir, fast_config):
    seen = []
    got_it = threading.Event()

    def on_batch(changes):
        seen.extend(changes)
        if any(c.name == "report.txt" for c in changes):
            got_it.set()

    w = make_watcher(watched_dir, fast_config)
    w.register_callback(on_batch)
    w.start()

    (watched_dir / "report.txt").write_text("data")

    assert got_it.wait(timeout=EVENT_TIMEOUT)
    assert any(c.kind is watchservice.ChangeKind.CREATED for c in seen)


def test_subdirectory_contents_not_reported(make_watcher, watched_dir, fast_config):
    sub = watched_dir / "sub"
    sub.mkdir()
    names = []
    w = make_watcher(watched_dir, fast_config)
    w.register_callback(lambda changes: names.extend(c.name for c in changes))
    w.start()

    (sub / "nested.txt").write_text("nested")
    time.sleep(0.5)
    assert not any("nested.txt" in name for name in names)


def test_stop_releases_blocked_waiter(make_watcher, watched_dir, observer_config):
    w = make_watcher(watched_dir, observer_config).start()
    results = []

    t = threading.Thread(target=lambda: results.append(w.wait_for_event()))
    t.start()
    time.sleep(0.2)
    w.stop()
    t.join(timeout=EVENT_TIMEOUT)

    assert not t.is_alive()
    assert results == [False]


def test_double_stop(make_watcher, watched_dir, fast_config):
    w = make_watcher(watched_dir, fast_config).start()
    w.stop()
    w.stop()
    assert w.join(timeout=EVENT_TIMEOUT)
    assert not w.is_alive()


def test_start_twice_is_noop(make_watcher, watched_dir, fast_config):
    w = make_watcher(watched_dir, fast_config).start()
    loop_before = w._loop
    w.start()
    assert w._loop is loop_before


def test_restart_after_stop(make_watcher, watched_dir, fast_config):
    w = make_watcher(watched_dir, fast_config).start()
    w.stop()
    assert w.join(timeout=EVENT_TIMEOUT)

    w.start()
    assert w.is_alive()
    (watched_dir / "again.txt").write_text("x")
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)


def test_restart_without_waiting_for_shutdown(make_watcher, watched_dir, fast_config):
    w = make_watcher(watched_dir, fast_config).start()
    w.stop()
    w.start()

    time.sleep(0.5)
    assert w.is_alive()
    (watched_dir / "x.txt").write_text("x")
    assert w.wait_for_event(timeout=EVENT_TIMEOUT)


def test_watched_directory_removed(make_watcher, tmp_path, fast_config):
    target = tmp_path / "doomed"
    target.mkdir()
    w = make_watcher(target, fast_config).start()

    target.rmdir()

    assert w.join(timeout=EVENT_TIMEOUT)
    assert not w.is_alive()
    assert w.error is None
    # Drain anything signalled before the loop ended, then it no longer blocks
    w.wait_for_event(timeout=0)
    assert w.wait_for_event() is False


def test_context_manager(watched_dir, fast_config):
    with DirectoryWatcher(watched_dir, fast_config) as w:
        assert w.is_ready()
        (watched_dir / "ctx.txt").write_text("hello")
        assert w.wait_for_event(timeout=EVENT_TIMEOUT)

    assert not w.is_alive()


def test_status(make_watcher, watched_dir, fast_config):
    fast_config.use_polling = True
    w = make_watcher(watched_dir, fast_config).start()

    status = w.get_status()

    assert status["observer"] == "polling"
    assert status["is_ready"] is True
    assert "DirectoryWatcher" in repr(w)
