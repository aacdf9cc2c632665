from __future__ import annotations

import threading

import pytest

from fakes import FakeEngine
from simregress.engines.session import CompletionMonitor, EngineSession, RunState, TimingProfile


def test_timing_profiles_per_mode() -> None:
    headless = TimingProfile.for_mode("headless")
    interactive = TimingProfile.for_mode("interactive")
    assert (headless.max_wait_s, headless.poll_interval_s) == (300.0, 0.5)
    assert (interactive.max_wait_s, interactive.poll_interval_s) == (600.0, 1.0)
    assert headless.bootstrap_timeout_s == 60.0 and interactive.bootstrap_timeout_s == 120.0
    assert headless.ready_settle_s == 2.0 and interactive.ready_settle_s == 5.0
    assert headless.load_settle_s == 0.5 and interactive.load_settle_s == 2.0
    with pytest.raises(ValueError):
        TimingProfile.for_mode("batch")


def test_monitor_completes_by_flag() -> None:
    engine = FakeEngine(complete_after=2)
    engine.run()
    monitor = CompletionMonitor(engine, end_time=0.01, poll_interval_s=0.5, max_wait_s=10)
    monitor.start()
    assert monitor.poll() is RunState.RUNNING
    assert monitor.poll() is RunState.COMPLETED_BY_FLAG
    assert monitor.elapsed_s == 1.0
    assert monitor.state.completed


def test_monitor_infers_completion_from_outputs() -> None:
    engine = FakeEngine(complete_after=1, flag_works=False)
    engine.run()
    monitor = CompletionMonitor(engine, end_time=0.01, poll_interval_s=0.5, max_wait_s=10)
    monitor.start()
    assert monitor.poll() is RunState.COMPLETED_BY_HEURISTIC
    assert monitor.evidence == "V"


def test_monitor_without_heuristic_times_out() -> None:
    engine = FakeEngine(complete_after=1, flag_works=False)
    engine.run()
    monitor = CompletionMonitor(engine, end_time=0.01, poll_interval_s=0.5, max_wait_s=1.0, heuristic=False)
    monitor.start()
    states = [monitor.poll(), monitor.poll()]
    assert states == [RunState.RUNNING, RunState.TIMED_OUT]
    assert monitor.poll() is RunState.TIMED_OUT
    assert monitor.elapsed_s == 1.0


def test_await_complete_times_out_exactly_at_bound(timing, sleep) -> None:
    engine = FakeEngine(complete_after=None)
    session = EngineSession(engine, timing, sleep=sleep)
    engine.run()
    monitor = session.await_complete("stuck.ipes", 0.01)
    assert monitor.state is RunState.TIMED_OUT
    assert monitor.elapsed_s == timing.max_wait_s
    assert sleep.calls == [timing.poll_interval_s] * 4


def test_start_is_idempotent(timing, sleep) -> None:
    engine = FakeEngine()
    session = EngineSession(engine, timing, sleep=sleep)
    assert session.start() is True
    assert session.start() is True
    session._thread.join(timeout=5)
    assert engine.boot_calls == 1
    assert session.started and session.ready


def test_start_continues_when_engine_never_ready(timing, sleep) -> None:
    engine = FakeEngine(ready=False, boot_error=True)
    session = EngineSession(engine, timing, sleep=sleep)
    assert session.start() is False
    assert session.started
    assert sleep.calls and set(sleep.calls) == {timing.ready_poll_s}


def test_concurrent_start_boots_once(timing, sleep) -> None:
    engine = FakeEngine()
    session = EngineSession(engine, timing, sleep=sleep)
    barrier = threading.Barrier(8)
    results = []

    def worker() -> None:
        barrier.wait()
        results.append(session.start())

    workers = [threading.Thread(target=worker) for _ in range(8)]
    for thread in workers:
        thread.start()
    for thread in workers:
        thread.join(timeout=5)
    session._thread.join(timeout=5)

    assert results == [True] * 8
    assert engine.boot_calls == 1
