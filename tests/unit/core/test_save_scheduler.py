"""Unit tests for SaveScheduler."""

import threading
import time

import pytest

from photon_config.core.save_scheduler import SaveScheduler


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def scheduler(clock, recorder):
    return SaveScheduler(recorder, tick_interval=1.0, debounce=1.0, clock=clock)


class TestDebounce:

    def test_idle_scheduler_never_saves(self, scheduler, clock, recorder):
        for _ in range(5):
            clock.advance(10)
            assert scheduler.flush_if_due() is False
        assert recorder.calls == 0

    def test_request_marks_pending(self, scheduler, clock):
        scheduler.request_save()
        assert scheduler.pending
        assert scheduler.pending_since == clock.now

    def test_not_saved_before_debounce(self, scheduler, clock, recorder):
        scheduler.request_save()
        clock.advance(0.5)
        assert scheduler.flush_if_due() is False
        assert recorder.calls == 0
        assert scheduler.pending

    def test_saved_once_debounce_elapsed(self, scheduler, clock, recorder):
        scheduler.request_save()
        clock.advance(1.0)
        assert scheduler.flush_if_due() is True
        assert recorder.calls == 1
        assert not scheduler.pending

    def test_burst_collapses_into_one_save(self, scheduler, clock, recorder):
        for _ in range(20):
            scheduler.request_save()
            clock.advance(0.1)
            scheduler.flush_if_due()
        assert recorder.calls == 0

        clock.advance(1.0)
        scheduler.flush_if_due()
        clock.advance(5.0)
        scheduler.flush_if_due()
        assert recorder.calls == 1
        assert scheduler.flush_count == 1

    def test_later_request_restarts_window(self, scheduler, clock, recorder):
        scheduler.request_save()
        clock.advance(0.5)
        scheduler.request_save()
        clock.advance(0.75)
        assert scheduler.flush_if_due() is False
        clock.advance(0.25)
        assert scheduler.flush_if_due() is True
        assert recorder.calls == 1

    def test_request_during_save_rearms(self, clock):
        scheduler = None

        def save():
            scheduler.request_save()

        scheduler = SaveScheduler(save, debounce=1.0, clock=clock)
        scheduler.request_save()
        clock.advance(1.0)
        assert scheduler.flush_if_due() is True
        assert scheduler.pending

    def test_failing_save_is_logged_and_cleared(self, clock):
        def boom():
            raise RuntimeError("disk on fire")

        scheduler = SaveScheduler(boom, debounce=0.0, clock=clock)
        scheduler.request_save()
        assert scheduler.flush_if_due() is True
        assert not scheduler.pending

    def test_clear_drops_pending_request(self, scheduler, clock, recorder):
        scheduler.request_save()
        scheduler.clear()
        clock.advance(5)
        assert scheduler.flush_if_due() is False
        assert recorder.calls == 0

    @pytest.mark.parametrize("tick,debounce", [(0, 1.0), (-1, 1.0), (1.0, -0.1)])
    def test_invalid_timings_rejected(self, recorder, tick, debounce):
        with pytest.raises(ValueError):
            SaveScheduler(recorder, tick_interval=tick, debounce=debounce)


class TestWorkerThread:

    def test_background_thread_flushes(self):
        saved = threading.Event()
        scheduler = SaveScheduler(saved.set, tick_interval=0.02, debounce=0.05)
        scheduler.start()
        try:
            assert scheduler.is_running
            scheduler.request_save()
            assert saved.wait(timeout=2.0)
        finally:
            scheduler.stop(timeout=2.0)
        assert not scheduler.is_running
        assert scheduler.flush_count == 1

    def test_stop_is_prompt_and_idempotent(self):
        scheduler = SaveScheduler(lambda: True, tick_interval=10.0, debounce=1.0)
        scheduler.start()
        scheduler.start()
        started = time.monotonic()
        scheduler.stop(timeout=2.0)
        scheduler.stop(timeout=2.0)
        assert time.monotonic() - started < 2.0
        assert not scheduler.is_running

    def test_pending_save_is_not_drained_on_stop(self, recorder):
        scheduler = SaveScheduler(recorder, tick_interval=0.01, debounce=60.0)
        scheduler.start()
        scheduler.request_save()
        scheduler.stop(timeout=2.0)
        assert recorder.calls == 0
        assert scheduler.pending
