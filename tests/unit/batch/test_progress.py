"""
Unit tests for ProgressTracker.
"""

import threading

from libcheck.batch import ProgressTracker


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestProgressTracker:
    def test_eta_extrapolates_average(self):
        clock = FakeClock()
        tracker = ProgressTracker(10, clock=clock)
        clock.now += 20

        done, eta = tracker.record_completion()

        assert done == 1
        assert eta == 180.0

    def test_eta_zero_when_finished(self):
        clock = FakeClock()
        tracker = ProgressTracker(2, clock=clock)
        clock.now += 5
        tracker.record_completion()

        _done, eta = tracker.record_completion()

        assert eta == 0.0

    def test_eta_before_any_completion(self):
        assert ProgressTracker(5).eta_seconds(0) == 0.0

    def test_concurrent_completions_counted(self):
        tracker = ProgressTracker(400)

        def work():
            for _ in range(100):
                tracker.record_completion()

        threads = [threading.Thread(target=work) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.completed == 400
