import os
import sys
import time
import logging

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import TimerRepository
from timer_service import (
    LapRecord,
    MemoryTimerStore,
    RepositoryTimerStore,
    TimerController,
    TimerState,
    TimerStore,
    TimerSyncChannel,
    apply,
    current_lap_elapsed,
    default_state,
    lap,
    load_state,
    pause,
    reset,
    start,
    total_elapsed,
)

DAY = "2024-01-01"


class FakeClock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class BrokenStore(TimerStore):
    def __init__(self, fail_load: bool = False) -> None:
        self.fail_load = fail_load

    def load(self, storage_key):
        if self.fail_load:
            raise ConnectionError("offline")
        return None

    def save(self, storage_key, payload):
        raise ConnectionError("offline")


def controller(store=None, channel=None, clock=None, throttle_ms=60_000, key="workout-stopwatch"):
    return TimerController(
        key,
        store if store is not None else MemoryTimerStore(),
        channel=channel,
        throttle_ms=throttle_ms,
        clock=clock or FakeClock(),
        today=lambda: DAY,
    )


def test_lap_scenario():
    s = default_state(DAY)
    s = start(s, 0)
    s = lap(s, 5000)
    assert s.laps[0] == LapRecord(id=1, lap_time="0:05", lap_time_ms=5000, started_at_ms=0)
    s = pause(s, 9000)
    assert s.lap_elapsed_before_start_ms == 4000
    assert not s.is_running
    s = start(s, 10_000)
    s = lap(s, 12_000)
    assert s.laps[1].id == 2
    assert s.laps[1].lap_time_ms == 6000
    assert s.laps[1].lap_time == "0:06"
    assert total_elapsed(s, 12_000) == 11_000


@pytest.mark.parametrize(
    "pairs",
    [
        [(0, 1000)],
        [(0, 1000), (5000, 7500), (10_000, 10_001)],
        [(100, 100), (200, 60_200)],
    ],
)
def test_start_pause_pairs_sum(pairs):
    s = default_state(DAY)
    for started, paused in pairs:
        s = pause(start(s, started), paused)
    expected = sum(p - st for st, p in pairs)
    assert total_elapsed(s, 999_999) == expected
    assert s.elapsed_before_start_ms == expected


def test_running_elapsed_is_derived_from_clock():
    s = start(default_state(DAY), 1000)
    assert current_lap_elapsed(s, 4000) == 3000
    assert current_lap_elapsed(s, 500) == 0
    assert total_elapsed(s, 4000) == 3000


def test_lap_with_zero_current_time_is_noop():
    s = start(default_state(DAY), 100)
    assert lap(s, 100) is s
    stopped = default_state(DAY)
    assert lap(stopped, 5000) is stopped


def test_lap_after_pause_is_noop():
    s = pause(start(default_state(DAY), 0), 3000)
    assert lap(s, 4000) is s


def test_start_and_pause_are_idempotent():
    running = start(default_state(DAY), 10)
    assert start(running, 50) is running
    stopped = default_state(DAY)
    assert pause(stopped, 50) is stopped


def test_reducers_do_not_mutate_input():
    s = default_state(DAY)
    after = start(s, 10)
    assert s.is_running is False
    assert after.is_running is True
    lapped = lap(after, 20)
    assert after.laps == ()
    assert len(lapped.laps) == 1


def test_reset_yields_default_state():
    s = lap(start(default_state(DAY), 0), 5000)
    assert reset(s, 6000, DAY) == default_state(DAY)
    manual = TimerState(date_key=DAY, auto_reset_daily=False, is_running=True)
    assert reset(manual, 0, DAY) == default_state(DAY, auto_reset_daily=False)


def test_apply_dispatch():
    s = apply(default_state(DAY), "start", 0)
    s = apply(s, "lap", 2000)
    s = apply(s, "pause", 3000)
    assert len(s.laps) == 1
    assert apply(s, "reset", 4000, DAY) == default_state(DAY)
    with pytest.raises(ValueError):
        apply(s, "rewind", 0)


def test_daily_reset_on_load():
    stored = lap(start(default_state(DAY), 0), 5000).to_dict()
    assert load_state(stored, "2024-01-02") == default_state("2024-01-02")
    assert load_state(stored, DAY).laps[0].lap_time_ms == 5000


def test_no_daily_reset_when_disabled():
    state = lap(start(default_state(DAY, auto_reset_daily=False), 0), 5000)
    loaded = load_state(state.to_dict(), "2024-01-05")
    assert loaded == state


def test_unparsable_payload_yields_default():
    assert load_state(None, DAY) == default_state(DAY)
    assert load_state({"date_key": DAY, "session_start_epoch_ms": "soon"}, DAY) == default_state(DAY)
    assert load_state({"date_key": DAY, "lap_times": [{"lap_time_ms": None}]}, DAY) == default_state(DAY)


def test_state_dict_roundtrip_keeps_laps():
    s = lap(start(default_state(DAY), 0), 61_000)
    data = s.to_dict()
    assert data["lap_times"] == [
        {"lap_id": 1, "lap_time": "1:01", "lap_time_ms": 61_000, "started_at_ms": 0}
    ]
    assert TimerState.from_dict(data) == s


def test_transitions_write_through():
    store = MemoryTimerStore()
    clock = FakeClock()
    c = controller(store, clock=clock)
    c.start()
    assert len(store.writes) == 1
    assert store.writes[0][1]["is_running"] is True
    clock.now = 2500
    c.lap()
    c.pause()
    c.reset()
    assert len(store.writes) == 4
    assert store.data["workout-stopwatch"] == default_state(DAY).to_dict()


def test_noop_transition_does_not_write():
    store = MemoryTimerStore()
    c = controller(store)
    c.lap()
    c.pause()
    assert store.writes == []


def test_replace_state_coalesces_until_flush():
    store = MemoryTimerStore()
    c = controller(store)
    first = start(default_state(DAY), 0)
    second = lap(first, 1000)
    third = lap(second, 2500)
    c.replace_state(first)
    c.replace_state(second)
    c.replace_state(third)
    assert store.writes == []
    assert c.state == third
    c.flush()
    assert len(store.writes) == 1
    assert store.writes[0][1] == third.to_dict()
    c.flush()
    assert len(store.writes) == 1


def test_throttled_write_fires_once():
    store = MemoryTimerStore()
    c = controller(store, throttle_ms=20)
    s = start(default_state(DAY), 0)
    for i in range(1, 6):
        s = lap(s, i * 1000)
        c.replace_state(s)
    deadline = time.time() + 2
    while not store.writes and time.time() < deadline:
        time.sleep(0.01)
    time.sleep(0.05)
    assert len(store.writes) == 1
    assert len(store.writes[0][1]["lap_times"]) == 5


def test_visibility_hidden_flushes():
    store = MemoryTimerStore()
    c = controller(store)
    c.replace_state(start(default_state(DAY), 0))
    c.handle_visibility(False)
    assert store.writes == []
    c.handle_visibility(True)
    assert len(store.writes) == 1


def test_transition_supersedes_pending_write():
    store = MemoryTimerStore()
    clock = FakeClock(1000)
    c = controller(store, clock=clock)
    c.replace_state(start(default_state(DAY), 0))
    c.pause()
    c.flush()
    assert len(store.writes) == 1
    assert store.writes[0][1]["is_running"] is False
    assert store.writes[0][1]["lap_elapsed_before_start_ms"] == 1000


def test_failed_write_is_logged_and_dropped(caplog):
    c = controller(BrokenStore())
    with caplog.at_level(logging.WARNING, logger="timer_service"):
        state = c.start()
    assert state.is_running
    assert c.state.is_running
    assert "failed to save timer" in caplog.text


def test_failed_load_yields_default(caplog):
    with caplog.at_level(logging.WARNING, logger="timer_service"):
        c = controller(BrokenStore(fail_load=True))
    assert c.state == default_state(DAY)
    assert "failed to load timer" in caplog.text


def test_sync_channel_last_writer_wins():
    channel = TimerSyncChannel()
    store = MemoryTimerStore()
    clock = FakeClock()
    a = controller(store, channel, clock)
    b = controller(store, channel, clock)
    other = controller(store, channel, clock, key="cardio-stopwatch")
    a.start()
    assert b.state == a.state
    assert other.state == default_state(DAY)
    clock.now = 4000
    b.lap()
    assert a.state == b.state
    assert len(a.state.laps) == 1
    b.close()
    a.reset()
    assert len(b.state.laps) == 1


def test_received_state_drops_pending_write():
    channel = TimerSyncChannel()
    store = MemoryTimerStore()
    clock = FakeClock()
    a = controller(store, channel, clock)
    b = controller(store, channel, clock)
    b.replace_state(default_state(DAY))
    a.start()
    assert b.state.is_running
    b.flush()
    assert store.data[a.storage_key]["is_running"] is True
    assert a.state.is_running
    assert b.state == a.state
    assert len(store.writes) == 1


def test_controller_loads_existing_state():
    store = MemoryTimerStore()
    clock = FakeClock()
    a = controller(store, clock=clock)
    a.start()
    clock.now = 3000
    a.lap()
    b = controller(store, clock=clock)
    assert b.state == a.state
    clock.now = 4000
    assert b.total_elapsed() == 4000
    assert b.display() == "0:04"


def test_repository_store_roundtrip(tmp_path):
    repo = TimerRepository(str(tmp_path / "timers.db"))
    store = RepositoryTimerStore(repo)
    clock = FakeClock()
    a = controller(store, clock=clock)
    a.start()
    clock.now = 5000
    a.lap()
    clock.now = 9000
    a.pause()
    b = controller(store, clock=clock)
    assert b.state == a.state
    assert b.state.lap_elapsed_before_start_ms == 4000
    store.delete("workout-stopwatch")
    assert store.load("workout-stopwatch") is None
