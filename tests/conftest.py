"""Shared fixtures for shipper tests."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from shipper.engine import WatchEngine
from shipper.listener import FileModificationListener


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "native_notification: needs a native file system observer"
    )


def pytest_runtest_setup(item: pytest.Item) -> None:
    if item.get_closest_marker("native_notification") and Observer is PollingObserver:
        pytest.skip("No native file system observer on this platform")


class RecordingListener(FileModificationListener):
    """Listener that records every callback and lets tests wait for them."""

    def __init__(self) -> None:
        self.events: list[tuple[str, ...]] = []
        self.failures: list[Exception] = []
        self._condition = threading.Condition()

    def _record(self, *event: str) -> None:
        with self._condition:
            self.events.append(event)
            self._condition.notify_all()

    def no_such_file(self, path: Path) -> None:
        self._record("no_such_file")

    def line_added(self, path: Path, line: str) -> None:
        self._record("line_added", line)

    def file_rotated(self, path: Path) -> None:
        self._record("file_rotated")

    def completely_read(self, path: Path) -> None:
        self._record("completely_read")

    def examination_failed(self, path: Path, error) -> None:
        self.failures.append(error)
        self._record("examination_failed")

    @property
    def lines(self) -> list[str]:
        with self._condition:
            return [event[1] for event in self.events if event[0] == "line_added"]

    def count(self, name: str) -> int:
        with self._condition:
            return sum(1 for event in self.events if event[0] == name)

    def wait_for(self, predicate: Callable[[RecordingListener], bool], timeout: float = 10.0) -> bool:
        """Block until ``predicate(self)`` holds or ``timeout`` elapses.

        The condition wraps an RLock, so predicates may use ``lines`` and ``count``.
        """
        with self._condition:
            return self._condition.wait_for(lambda: predicate(self), timeout)

    def wait_for_lines(self, expected: list[str], timeout: float = 10.0) -> bool:
        return self.wait_for(lambda listener: listener.lines == expected, timeout)

    def wait_for_count(self, name: str, count: int, timeout: float = 10.0) -> bool:
        return self.wait_for(lambda listener: listener.count(name) >= count, timeout)


def poll_until(condition: Callable[[], bool], timeout: float = 10.0, interval: float = 0.01) -> bool:
    """Poll ``condition`` until it holds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Provide a helper polling a condition with a timeout."""
    return poll_until


@pytest.fixture
def listener() -> RecordingListener:
    """Create a recording listener."""
    return RecordingListener()


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    """Create log file with initial content."""
    path = tmp_path / "test.log"
    path.write_text("Line 1\nLine 2\nLine 3\n")
    return path


@pytest.fixture
def run_engine() -> Iterator[Callable[[WatchEngine], threading.Thread]]:
    """Run engines on background threads and stop them after the test."""
    started: list[tuple[WatchEngine, threading.Thread]] = []

    def start(engine: WatchEngine) -> threading.Thread:
        thread = threading.Thread(target=engine.run, name="engine-under-test", daemon=True)
        thread.start()
        started.append((engine, thread))
        return thread

    yield start

    for engine, thread in started:
        engine.stop()
        thread.join(timeout=10.0)
        assert not thread.is_alive(), "engine did not stop"


@pytest.fixture(autouse=True)
def restore_shipper_loggers() -> Iterator[None]:
    """Undo logger configuration done by LoggingManager during a test."""
    names = ("shipper", "shipper.lines")
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.propagate, logger.level)
    yield
    for name, (handlers, propagate, level) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.propagate = propagate
        logger.setLevel(level)
