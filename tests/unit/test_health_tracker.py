from __future__ import annotations

import threading

from visionrelay.core.providers.health import HealthTracker


def test_health_tracker_starts_zeroed_and_counts_outcomes():
    tracker = HealthTracker(["p1", "p2"])
    snap = tracker.snapshot()
    assert snap["p1"].success_count == 0
    assert snap["p1"].failure_count == 0
    assert snap["p1"].last_failure_ts is None

    tracker.record_success("p1")
    tracker.record_failure("p2")
    tracker.record_failure("p2")

    snap = tracker.snapshot()
    assert snap["p1"].success_count == 1
    assert snap["p2"].failure_count == 2
    assert snap["p2"].last_failure_ts is not None
    assert tracker.summary()["p2"]["last_failure_ts"].endswith("+00:00")


def test_snapshot_is_a_copy():
    tracker = HealthTracker(["p1"])
    snap = tracker.snapshot()
    snap["p1"].success_count = 99
    assert tracker.snapshot()["p1"].success_count == 0


def test_unknown_provider_gets_a_record():
    tracker = HealthTracker()
    tracker.record_failure("late")
    assert tracker.snapshot()["late"].failure_count == 1


def test_concurrent_updates_are_not_lost():
    tracker = HealthTracker(["p1"])

    def work():
        for _ in range(1000):
            tracker.record_failure("p1")
            tracker.record_success("p1")

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snap = tracker.snapshot()["p1"]
    assert snap.failure_count == 8000
    assert snap.success_count == 8000
