"""Stopwatch state, transitions and persistence for workout timers.

A timer is an immutable :class:`TimerState` threaded through the pure
reducer functions ``start``, ``pause``, ``lap`` and ``reset``. Elapsed time
is always derived from wall-clock epochs and accumulators so a state written
by one process can be resumed by another. :class:`TimerController` owns one
state for one storage key and writes it to a :class:`TimerStore`.
"""

import datetime
import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from tools import TimeFormatter

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


def today_key() -> str:
    return datetime.date.today().isoformat()


@dataclass(frozen=True)
class LapRecord:
    id: int
    lap_time: str
    lap_time_ms: int
    started_at_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "lap_id": self.id,
            "lap_time": self.lap_time,
            "lap_time_ms": self.lap_time_ms,
            "started_at_ms": self.started_at_ms,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LapRecord":
        lap_ms = int(data["lap_time_ms"])
        return cls(
            id=int(data.get("lap_id", data.get("id"))),
            lap_time=data.get("lap_time") or TimeFormatter.format_ms(lap_ms),
            lap_time_ms=lap_ms,
            started_at_ms=int(data.get("started_at_ms") or 0),
        )


@dataclass(frozen=True)
class TimerState:
    is_running: bool = False
    session_start_epoch_ms: int = 0
    lap_start_epoch_ms: int = 0
    elapsed_before_start_ms: int = 0
    lap_elapsed_before_start_ms: int = 0
    laps: Tuple[LapRecord, ...] = field(default_factory=tuple)
    date_key: str = ""
    auto_reset_daily: bool = True

    def to_dict(self) -> dict:
        return {
            "is_running": self.is_running,
            "session_start_epoch_ms": self.session_start_epoch_ms,
            "lap_start_epoch_ms": self.lap_start_epoch_ms,
            "elapsed_before_start_ms": self.elapsed_before_start_ms,
            "lap_elapsed_before_start_ms": self.lap_elapsed_before_start_ms,
            "date_key": self.date_key,
            "auto_reset_daily": self.auto_reset_daily,
            "lap_times": [lap.to_dict() for lap in self.laps],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimerState":
        return cls(
            is_running=bool(data.get("is_running")),
            session_start_epoch_ms=int(data.get("session_start_epoch_ms") or 0),
            lap_start_epoch_ms=int(data.get("lap_start_epoch_ms") or 0),
            elapsed_before_start_ms=int(data.get("elapsed_before_start_ms") or 0),
            lap_elapsed_before_start_ms=int(
                data.get("lap_elapsed_before_start_ms") or 0
            ),
            laps=tuple(LapRecord.from_dict(row) for row in data.get("lap_times") or []),
            date_key=str(data.get("date_key") or ""),
            auto_reset_daily=bool(data.get("auto_reset_daily", True)),
        )


def default_state(date_key: Optional[str] = None, auto_reset_daily: bool = True) -> TimerState:
    return TimerState(date_key=date_key or today_key(), auto_reset_daily=auto_reset_daily)


def current_lap_elapsed(state: TimerState, now: int) -> int:
    running = max(0, now - state.lap_start_epoch_ms) if state.is_running else 0
    return running + state.lap_elapsed_before_start_ms


def total_elapsed(state: TimerState, now: int) -> int:
    return sum(record.lap_time_ms for record in state.laps) + current_lap_elapsed(state, now)


def start(state: TimerState, now: int) -> TimerState:
    if state.is_running:
        return state
    return replace(
        state, is_running=True, session_start_epoch_ms=now, lap_start_epoch_ms=now
    )


def pause(state: TimerState, now: int) -> TimerState:
    if not state.is_running:
        return state
    return replace(
        state,
        is_running=False,
        elapsed_before_start_ms=state.elapsed_before_start_ms
        + (now - state.session_start_epoch_ms),
        lap_elapsed_before_start_ms=state.lap_elapsed_before_start_ms
        + (now - state.lap_start_epoch_ms),
    )


def lap(state: TimerState, now: int) -> TimerState:
    lap_ms = current_lap_elapsed(state, now)
    if not state.is_running or lap_ms <= 0:
        return state
    record = LapRecord(
        id=len(state.laps) + 1,
        lap_time=TimeFormatter.format_ms(lap_ms),
        lap_time_ms=lap_ms,
        started_at_ms=state.lap_start_epoch_ms,
    )
    return replace(
        state,
        laps=state.laps + (record,),
        lap_elapsed_before_start_ms=0,
        lap_start_epoch_ms=now,
    )


def reset(state: TimerState, now: int, today: Optional[str] = None) -> TimerState:
    return default_state(today, state.auto_reset_daily)


ACTIONS: Dict[str, Callable[[TimerState, int], TimerState]] = {
    "start": start,
    "pause": pause,
    "lap": lap,
}


def apply(
    state: TimerState, action: str, now: int, today: Optional[str] = None
) -> TimerState:
    if action == "reset":
        return reset(state, now, today)
    try:
        reducer = ACTIONS[action]
    except KeyError:
        raise ValueError(f"unknown timer action: {action}")
    return reducer(state, now)


def load_state(payload: Optional[dict], today: Optional[str] = None) -> TimerState:
    """Build a state from a stored payload, applying the daily reset.

    Missing or unparsable payloads yield the default state.
    """
    today = today or today_key()
    if not payload:
        return default_state(today)
    try:
        state = TimerState.from_dict(payload)
    except (AttributeError, KeyError, TypeError, ValueError):
        logger.warning("discarding unparsable timer payload", exc_info=True)
        return default_state(today)
    if state.auto_reset_daily and state.date_key != today:
        return default_state(today)
    return state


class TimerStore:
    """Persistence backend for timer payloads keyed by storage key."""

    def load(self, storage_key: str) -> Optional[dict]:
        raise NotImplementedError

    def save(self, storage_key: str, payload: dict) -> None:
        raise NotImplementedError

    def delete(self, storage_key: str) -> None:
        raise NotImplementedError


class MemoryTimerStore(TimerStore):
    def __init__(self) -> None:
        self.data: Dict[str, dict] = {}
        self.writes: List[Tuple[str, dict]] = []

    def load(self, storage_key: str) -> Optional[dict]:
        return self.data.get(storage_key)

    def save(self, storage_key: str, payload: dict) -> None:
        self.writes.append((storage_key, payload))
        self.data[storage_key] = payload

    def delete(self, storage_key: str) -> None:
        self.data.pop(storage_key, None)


class RepositoryTimerStore(TimerStore):
    """Stores timers directly through :class:`db.TimerRepository`."""

    def __init__(self, repo) -> None:
        self.repo = repo

    def load(self, storage_key: str) -> Optional[dict]:
        timer = self.repo.fetch(storage_key)
        if timer is None:
            return None
        timer["lap_times"] = self.repo.fetch_laps(timer["id"])
        return timer

    def save(self, storage_key: str, payload: dict) -> None:
        timer = self.repo.upsert(storage_key, payload)
        self.repo.replace_laps(timer["id"], payload.get("lap_times") or [])

    def delete(self, storage_key: str) -> None:
        self.repo.delete(storage_key)


class ApiTimerStore(TimerStore):
    """Stores timers through the REST API using :class:`client.FitnessClient`."""

    def __init__(self, client) -> None:
        self.client = client

    def load(self, storage_key: str) -> Optional[dict]:
        return self.client.get_timer(storage_key)

    def save(self, storage_key: str, payload: dict) -> None:
        self.client.save_timer(storage_key, payload)

    def delete(self, storage_key: str) -> None:
        self.client.delete_timer(storage_key)


class TimerSyncChannel:
    """In-process broadcast of timer states between controllers.

    Receivers replace their state wholesale; the last published state wins.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List["TimerController"]] = {}
        self._lock = threading.Lock()

    def subscribe(self, storage_key: str, controller: "TimerController") -> None:
        with self._lock:
            self._subscribers.setdefault(storage_key, []).append(controller)

    def unsubscribe(self, storage_key: str, controller: "TimerController") -> None:
        with self._lock:
            subs = self._subscribers.get(storage_key, [])
            if controller in subs:
                subs.remove(controller)

    def publish(
        self, storage_key: str, state: TimerState, sender: "TimerController"
    ) -> None:
        with self._lock:
            targets = [c for c in self._subscribers.get(storage_key, []) if c is not sender]
        for controller in targets:
            controller.receive(state)


class TimerController:
    """Owns the live state of one stopwatch and persists its changes.

    Transitions write through immediately. ``replace_state`` coalesces rapid
    updates into one write after ``throttle_ms``; ``flush`` writes any pending
    state right away. Failed writes are logged and dropped.
    """

    def __init__(
        self,
        storage_key: str,
        store: TimerStore,
        channel: Optional[TimerSyncChannel] = None,
        throttle_ms: int = 100,
        clock: Callable[[], int] = epoch_ms,
        today: Callable[[], str] = today_key,
    ) -> None:
        self.storage_key = storage_key
        self.store = store
        self.channel = channel
        self.throttle_ms = throttle_ms
        self.clock = clock
        self.today = today
        self._lock = threading.Lock()
        self._pending: Optional[TimerState] = None
        self._timer: Optional[threading.Timer] = None
        self.state = self._load()
        if channel is not None:
            channel.subscribe(storage_key, self)

    def _load(self) -> TimerState:
        try:
            payload = self.store.load(self.storage_key)
        except Exception:
            logger.warning("failed to load timer %s", self.storage_key, exc_info=True)
            return default_state(self.today())
        return load_state(payload, self.today())

    def reload(self) -> TimerState:
        self.state = self._load()
        return self.state

    def _dispatch(self, action: str) -> TimerState:
        new_state = apply(self.state, action, self.clock(), self.today())
        if new_state is self.state:
            return self.state
        self._cancel_pending()
        self.state = new_state
        self._persist(new_state)
        return new_state

    def start(self) -> TimerState:
        return self._dispatch("start")

    def pause(self) -> TimerState:
        return self._dispatch("pause")

    def lap(self) -> TimerState:
        return self._dispatch("lap")

    def reset(self) -> TimerState:
        return self._dispatch("reset")

    def replace_state(self, state: TimerState) -> None:
        self.state = state
        with self._lock:
            self._pending = state
            if self._timer is None:
                self._timer = threading.Timer(self.throttle_ms / 1000, self.flush)
                self._timer.daemon = True
                self._timer.start()

    def _cancel_pending(self) -> None:
        with self._lock:
            self._pending = None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if pending is not None:
            self._persist(pending)

    def handle_visibility(self, hidden: bool) -> None:
        if hidden:
            self.flush()

    def close(self) -> None:
        self.flush()
        if self.channel is not None:
            self.channel.unsubscribe(self.storage_key, self)

    def _persist(self, state: TimerState) -> None:
        try:
            self.store.save(self.storage_key, state.to_dict())
        except Exception:
            logger.warning("failed to save timer %s", self.storage_key, exc_info=True)
            return
        if self.channel is not None:
            self.channel.publish(self.storage_key, state, self)

    def receive(self, state: TimerState) -> None:
        self._cancel_pending()
        self.state = state

    def current_lap_elapsed(self) -> int:
        return current_lap_elapsed(self.state, self.clock())

    def total_elapsed(self) -> int:
        return total_elapsed(self.state, self.clock())

    def display(self) -> str:
        return TimeFormatter.format_ms(self.total_elapsed())
