import logging
from pathlib import Path

import pytest

from watchservice import DirectoryWatcher
from watchservice.utils.config import WatcherConfig


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    """Create an empty directory to watch."""
    d = tmp_path / "WatchServiceTest"
    d.mkdir()
    return d


@pytest.fixture
def fast_config() -> WatcherConfig:
    """Watcher settings tuned for short test runs."""
    return WatcherConfig(
        poll_interval=0.05,
        batch_latency=0.05,
        liveness_interval=0.1,
        ready_timeout=5.0,
        join_timeout=2.0,
    )


@pytest.fixture(params=["native", "polling"])
def observer_config(request, fast_config) -> WatcherConfig:
    fast_config.use_polling = request.param == "polling"
    return fast_config


@pytest.fixture
def make_watcher():
    """Build watchers that are stopped when the test ends."""
    created = []

    def factory(directory, config=None):
        w = DirectoryWatcher(directory, config)
        created.append(w)
        return w

    yield factory

    for w in created:
        w.stop()
        w.join(timeout=5)


@pytest.fixture
def restore_root_logging():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
