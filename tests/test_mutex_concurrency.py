"""Cross-process and cross-thread tests for FileMutex."""

from __future__ import annotations

import multiprocessing
import os
import threading
import time
from pathlib import Path

import pytest

import filemutex.core.locks.backends as backends_module
from filemutex.core.locks.manager import FileMutex

pytestmark = pytest.mark.skipif(backends_module.fcntl is None, reason="fcntl not available on this platform")

PROCESSES = 4
ITERATIONS = 15


def _counter_worker(data_file: str, counter_file: str, marker_file: str, iterations: int) -> None:
    """Increment a shared counter only while holding the "shared" lock."""
    mutex = FileMutex(data_file=Path(data_file))
    counter = Path(counter_file)
    for _ in range(iterations):
        mutex.acquire("shared", 0, poll_interval_micros=500)
        # O_EXCL fails if another process is inside the critical section.
        fd = os.open(marker_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        os.close(fd)
        value = int(counter.read_text(encoding="utf-8"))
        time.sleep(0.001)
        counter.write_text(str(value + 1), encoding="utf-8")
        os.unlink(marker_file)
        if not mutex.release("shared"):
            raise SystemExit(3)


def _holder_worker(data_file: str, ready_path: str, released_path: str, hold_seconds: float) -> None:
    mutex = FileMutex(data_file=Path(data_file))
    mutex.acquire("x")
    Path(ready_path).write_text("1", encoding="utf-8")
    time.sleep(hold_seconds)
    Path(released_path).write_text(repr(time.time()), encoding="utf-8")
    mutex.release("x")


def _wait_for_file(path: Path, timeout_seconds: float = 5.0) -> None:
    deadline = time.time() + timeout_seconds
    while time.time() < deadline:
        if path.exists() and path.read_text(encoding="utf-8").strip():
            return
        time.sleep(0.01)
    raise AssertionError(f"Timed out waiting for {path}")


def test_processes_never_share_the_critical_section(mutex_config, tmp_path: Path) -> None:
    counter = tmp_path / "counter.txt"
    counter.write_text("0", encoding="utf-8")
    marker = tmp_path / "inside.marker"

    procs = [
        multiprocessing.Process(
            target=_counter_worker,
            args=(str(mutex_config.data_file), str(counter), str(marker), ITERATIONS),
        )
        for _ in range(PROCESSES)
    ]
    for proc in procs:
        proc.start()
    for proc in procs:
        proc.join(timeout=60)

    assert [proc.exitcode for proc in procs] == [0] * PROCESSES
    assert int(counter.read_text(encoding="utf-8")) == PROCESSES * ITERATIONS
    assert not marker.exists()
    assert FileMutex(data_file=mutex_config.data_file).snapshot() == {}


def test_acquire_returns_soon_after_holder_releases(mutex_config, tmp_path: Path) -> None:
    ready = tmp_path / "ready.txt"
    released = tmp_path / "released.txt"
    hold_seconds = 0.3

    proc = multiprocessing.Process(
        target=_holder_worker,
        args=(str(mutex_config.data_file), str(ready), str(released), hold_seconds),
    )
    proc.start()
    try:
        _wait_for_file(ready)
        waiter = FileMutex(data_file=mutex_config.data_file)
        assert waiter.try_acquire("x") is False

        waiter.acquire("x", 0, poll_interval_micros=1000)
        acquired_at = time.time()
    finally:
        proc.join(timeout=10)

    assert proc.exitcode == 0
    release_started = float(released.read_text(encoding="utf-8"))
    assert acquired_at >= release_started
    # One poll interval plus scheduling slack.
    assert acquired_at - release_started < 0.5
    assert waiter.release() is True


def test_lock_acquired_in_one_process_is_released_by_another(mutex_config, tmp_path: Path) -> None:
    ready = tmp_path / "ready.txt"
    released = tmp_path / "released.txt"

    # The holder sleeps long enough for us to release its lock from here.
    proc = multiprocessing.Process(
        target=_holder_worker,
        args=(str(mutex_config.data_file), str(ready), str(released), 0.5),
    )
    proc.start()
    try:
        _wait_for_file(ready)
        other = FileMutex(data_file=mutex_config.data_file)
        assert other.release("x") is True
        assert other.try_acquire("x") is True
    finally:
        proc.join(timeout=10)

    # The holder's own release then removes the entry we re-acquired.
    assert proc.exitcode == 0
    assert other.snapshot() == {}


def test_threads_with_separate_instances_serialize(mutex_config) -> None:
    total = 0
    errors: list[BaseException] = []

    def _worker() -> None:
        nonlocal total
        mutex = FileMutex(data_file=mutex_config.data_file)
        try:
            for _ in range(20):
                with mutex.hold("counter", poll_interval_micros=200):
                    current = total
                    time.sleep(0.0005)
                    total = current + 1
        except BaseException as e:  # surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    assert total == 80
