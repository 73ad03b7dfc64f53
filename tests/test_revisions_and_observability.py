"""Raster revision tracking and operation instrumentation tests."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.revisions import RasterRevisionTracker
from tools.observability import instrument_operation


def test_revisions_increase() -> None:
    tracker = RasterRevisionTracker()
    first = tracker.next_revision("front")
    second = tracker.next_revision("front")
    other = tracker.next_revision("back")
    assert first < second
    assert other > second


def test_forget_releases_a_key() -> None:
    """Closed keys are evicted and a reopened key never reuses old revisions."""

    tracker = RasterRevisionTracker()
    old = tracker.next_revision("front")
    assert tracker.offer("front", old, "old") is True
    tracker.offer("back", tracker.next_revision("back"), "back")
    assert len(tracker) == 2

    assert tracker.forget("front") is True
    assert tracker.forget("front") is False
    assert tracker.latest("front") is None
    assert len(tracker) == 1

    reopened = tracker.next_revision("front")
    assert reopened > old
    assert tracker.offer("front", reopened, "new") is True
    assert tracker.offer("front", old, "old") is False


def test_stale_results_are_discarded() -> None:
    """A slow render for an older edit never overwrites a newer one."""

    tracker = RasterRevisionTracker()
    first = tracker.next_revision("front")
    second = tracker.next_revision("front")

    assert tracker.offer("front", second, "new") is True
    assert tracker.offer("front", first, "old") is False
    assert tracker.latest("front") == "new"
    assert tracker.latest_revision("front") == second
    assert tracker.latest("back") is None


def test_same_revision_can_be_reoffered() -> None:
    tracker = RasterRevisionTracker()
    revision = tracker.next_revision("front")
    assert tracker.offer("front", revision, "a") is True
    assert tracker.offer("front", revision, "b") is True
    assert tracker.latest("front") == "b"


def test_concurrent_revisions_are_unique() -> None:
    tracker = RasterRevisionTracker()
    issued: list[int] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            revision = tracker.next_revision("front")
            with lock:
                issued.append(revision)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(issued) == list(range(1, 201))


def test_instrument_operation_logs_lifecycle(caplog: pytest.LogCaptureFixture) -> None:
    @instrument_operation("double")
    def double(*, factor: float) -> float:
        return factor * 2

    caplog.set_level(logging.INFO, logger="tools.observability")
    assert double(factor=1.5) == 3.0

    events = [getattr(record, "event", None) for record in caplog.records]
    assert "operation_started" in events
    assert "operation_completed" in events


def test_instrument_operation_reraises_failures(caplog: pytest.LogCaptureFixture) -> None:
    @instrument_operation("explode")
    def explode() -> None:
        raise RuntimeError("boom")

    caplog.set_level(logging.INFO, logger="tools.observability")
    with pytest.raises(RuntimeError):
        explode()

    failed = [record for record in caplog.records if getattr(record, "event", None) == "operation_failed"]
    assert failed
    assert failed[0].error_type == "RuntimeError"
