"""
Deferred task scheduler: keyed replacement, cancellation and due-order execution.
"""

import pytest

from formdraft.core.scheduler import DeferredTaskScheduler, ManualClock


class TestScheduling:

    def test_runs_only_after_delay(self, scheduler, clock):
        calls = []
        scheduler.schedule("t", 0.2, lambda: calls.append("t"))

        clock.advance(0.1)
        assert scheduler.run_due() == 0

        clock.advance(0.1)
        assert scheduler.run_due() == 1
        assert calls == ["t"]
        assert scheduler.pending() == []

    def test_same_id_replaces_pending_task(self, scheduler, clock):
        calls = []
        scheduler.schedule("t", 0.2, lambda: calls.append(1))
        clock.advance(0.1)
        scheduler.schedule("t", 0.2, lambda: calls.append(2))

        clock.advance(0.1)
        scheduler.run_due()
        assert calls == []

        clock.advance(0.1)
        scheduler.run_due()
        assert calls == [2]

    def test_due_order(self, scheduler, clock):
        calls = []
        scheduler.schedule("late", 0.3, lambda: calls.append("late"))
        scheduler.schedule("early", 0.1, lambda: calls.append("early"))

        clock.advance(1)
        scheduler.run_due()
        assert calls == ["early", "late"]

    def test_next_due_in(self, scheduler, clock):
        assert scheduler.next_due_in() is None

        scheduler.schedule("t", 0.2, lambda: None)
        clock.advance(0.05)
        assert scheduler.next_due_in() == pytest.approx(0.15)

    def test_invalid_arguments(self, scheduler):
        with pytest.raises(ValueError, match="must be callable"):
            scheduler.schedule("t", 0.2, "not_callable")
        with pytest.raises(ValueError, match="Delay must be >= 0"):
            scheduler.schedule("t", -1, lambda: None)

    def test_uses_monotonic_clock_by_default(self):
        scheduler = DeferredTaskScheduler()
        scheduler.schedule("t", 60, lambda: None)
        assert scheduler.run_due() == 0


class TestCancellation:

    def test_cancel(self, scheduler, clock):
        calls = []
        task = scheduler.schedule("t", 0.2, lambda: calls.append("t"))

        assert scheduler.cancel("t") is True
        assert scheduler.cancel("t") is False
        assert task.cancelled

        clock.advance(1)
        scheduler.run_due()
        assert calls == []

    def test_cancel_all_by_prefix(self, scheduler, clock):
        calls = []
        scheduler.schedule("a:1", 0.2, lambda: calls.append("a1"))
        scheduler.schedule("a:2", 0.2, lambda: calls.append("a2"))
        scheduler.schedule("b:1", 0.2, lambda: calls.append("b1"))

        assert scheduler.cancel_all("a:") == 2
        assert scheduler.pending() == ["b:1"]

        clock.advance(1)
        scheduler.run_due()
        assert calls == ["b1"]

    def test_task_can_cancel_later_task(self, scheduler, clock):
        calls = []
        scheduler.schedule("first", 0.1, lambda: scheduler.cancel("second"))
        scheduler.schedule("second", 0.2, lambda: calls.append("second"))

        clock.advance(1)
        assert scheduler.run_due() == 1
        assert calls == []

    def test_failing_task_is_isolated(self, scheduler, clock):
        calls = []

        def boom():
            raise RuntimeError("boom")

        scheduler.schedule("bad", 0.1, boom)
        scheduler.schedule("good", 0.2, lambda: calls.append("good"))

        clock.advance(1)
        assert scheduler.run_due() == 1
        assert calls == ["good"]


class TestManualClock:

    def test_advance(self):
        clock = ManualClock(start=5.0)
        clock.advance(0.5)
        assert clock() == 5.5
