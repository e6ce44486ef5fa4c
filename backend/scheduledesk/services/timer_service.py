"""Stream countdown timer: state machine over wall-clock timestamps.

States: Unset (no duration stored), Stopped, Running, Paused. Elapsed time is
never tracked by a process clock; it is derived on every read from the anchor
point (``start_time_ms``) stored with the timer. At any time exactly one of
{``start_time_ms`` set, ``paused_at_ms`` set, neither} holds.

``duration_ms`` is the configured total while stopped and the remaining time at
the last anchor while running or paused. ``stop`` keeps it as-is, so a
stop/start pair restarts from the last configured value rather than from where
the countdown was.

Concurrent ``adjust`` calls on one channel can lose an adjustment (last write
wins); the timer is driven from a single operator console.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from scheduledesk.errors import InvalidArgument, InvalidState
from scheduledesk.services.auth_service import Authorizer, check_can_manage
from scheduledesk.store import keys
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000


def current_time_ms() -> int:
    return int(time.time() * 1000)


def format_remaining(ms: int) -> str:
    """HH:MM:SS, floored to whole seconds; ``00:00:00`` once expired."""
    if ms <= 0:
        return "00:00:00"
    total_seconds = ms // 1000
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _parse_ms(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed stored timer value %r", raw)
        return None


@dataclass
class TimerState:
    duration_ms: int = 0
    start_time_ms: Optional[int] = None
    paused_at_ms: Optional[int] = None
    is_running: bool = False
    is_set: bool = False

    def remaining_ms(self, now_ms: int) -> int:
        if self.is_running and self.start_time_ms is not None:
            return max(0, self.duration_ms - (now_ms - self.start_time_ms))
        if self.paused_at_ms is not None:
            return max(0, self.paused_at_ms)
        return self.duration_ms

    def snapshot(self, now_ms: int) -> dict[str, Any]:
        if not self.is_set:
            return {"remainingMs": 0, "isRunning": False, "isExpired": False, "formattedTime": "00:00:00"}
        remaining = self.remaining_ms(now_ms)
        expired = remaining <= 0
        return {
            "remainingMs": remaining,
            "isRunning": self.is_running and not expired,
            "isExpired": expired,
            "formattedTime": format_remaining(remaining),
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "durationMs": self.duration_ms,
            "startTimeMs": self.start_time_ms,
            "pausedAtMs": self.paused_at_ms,
            "isRunning": self.is_running,
        }

    # --- transitions (pure; callers persist the result) ---

    def set_duration(self, hours: int, minutes: int, start_immediately: bool, now_ms: int) -> None:
        if hours < 0 or minutes < 0:
            raise InvalidArgument("hours and minutes must not be negative")
        duration = (hours * 60 + minutes) * MS_PER_MINUTE
        if duration <= 0:
            raise InvalidArgument("Timer duration must be greater than zero")
        self.duration_ms = duration
        self.paused_at_ms = None
        self.is_set = True
        if start_immediately:
            self.start_time_ms = now_ms
            self.is_running = True
        else:
            self.start_time_ms = None
            self.is_running = False

    def start(self, now_ms: int) -> None:
        # Re-entrant while running: re-anchors on the remaining time observed now
        self.duration_ms = self.remaining_ms(now_ms)
        self.start_time_ms = now_ms
        self.paused_at_ms = None
        self.is_running = True
        self.is_set = True

    def stop(self) -> None:
        self.start_time_ms = None
        self.paused_at_ms = None
        self.is_running = False

    def pause(self, now_ms: int) -> None:
        if not self.is_running or self.start_time_ms is None:
            raise InvalidState("Timer is not running")
        self.paused_at_ms = self.remaining_ms(now_ms)
        self.start_time_ms = None
        self.is_running = False

    def resume(self, now_ms: int) -> None:
        if self.is_running:
            raise InvalidState("Timer is already running")
        if self.paused_at_ms is None:
            raise InvalidState("Timer is not paused")
        self.duration_ms = self.paused_at_ms
        self.start_time_ms = now_ms
        self.paused_at_ms = None
        self.is_running = True

    def adjust(self, delta_minutes: int, now_ms: int) -> None:
        new_remaining = max(0, self.remaining_ms(now_ms) + delta_minutes * MS_PER_MINUTE)
        if self.is_running and self.start_time_ms is not None:
            # Shift the anchor so elapsed-since-anchor is zero at the new remaining
            self.duration_ms = new_remaining
            self.start_time_ms = now_ms
        elif self.paused_at_ms is not None:
            self.paused_at_ms = new_remaining
            self.duration_ms = new_remaining
        else:
            self.duration_ms = new_remaining
        self.is_set = True


def load_timer(store: KeyValueStore, channel_name: str) -> TimerState:
    field_keys = [keys.timer_field_key(channel_name, f) for f in keys.TIMER_FIELDS]
    raw = dict(zip(keys.TIMER_FIELDS, store.get_many(field_keys)))
    duration = _parse_ms(raw["duration"])
    return TimerState(
        duration_ms=duration or 0,
        start_time_ms=_parse_ms(raw["startTime"]),
        paused_at_ms=_parse_ms(raw["pausedAt"]),
        is_running=raw["isRunning"] == "true",
        is_set=duration is not None,
    )


def save_timer(store: KeyValueStore, channel_name: str, state: TimerState) -> None:
    with store.atomic():
        if state.is_set:
            store.set(keys.timer_field_key(channel_name, "duration"), str(state.duration_ms))
        store.set(keys.timer_field_key(channel_name, "isRunning"), "true" if state.is_running else "false")
        for field, value in (("startTime", state.start_time_ms), ("pausedAt", state.paused_at_ms)):
            if value is None:
                store.delete(keys.timer_field_key(channel_name, field))
            else:
                store.set(keys.timer_field_key(channel_name, field), str(value))


def _timer_out(channel_name: str, state: TimerState, now_ms: int) -> dict[str, Any]:
    return {"channelName": channel_name, "state": state.as_dict(), "snapshot": state.snapshot(now_ms)}


def get_snapshot(store: KeyValueStore, channel_name: str, now_ms: Optional[int] = None) -> dict[str, Any]:
    """Public read: live remaining time, no authorization."""
    now_ms = current_time_ms() if now_ms is None else now_ms
    return load_timer(store, channel_name).snapshot(now_ms)


def _mutate(store, authorizer, token, channel_name, now_ms, action: str, apply) -> dict[str, Any]:
    check_can_manage(authorizer, token, channel_name)
    now_ms = current_time_ms() if now_ms is None else now_ms
    state = load_timer(store, channel_name)
    apply(state, now_ms)
    save_timer(store, channel_name, state)
    logger.info(
        "Timer %s on %s: duration=%dms running=%s paused_at=%s",
        action, channel_name, state.duration_ms, state.is_running, state.paused_at_ms,
    )
    return _timer_out(channel_name, state, now_ms)


def set_duration(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    hours: int,
    minutes: int,
    start_immediately: bool = False,
    now_ms: Optional[int] = None,
) -> dict[str, Any]:
    return _mutate(
        store, authorizer, token, channel_name, now_ms, "set",
        lambda state, now: state.set_duration(hours, minutes, start_immediately, now),
    )


def start(store: KeyValueStore, authorizer: Authorizer, token: Optional[str], channel_name: str,
          now_ms: Optional[int] = None) -> dict[str, Any]:
    return _mutate(store, authorizer, token, channel_name, now_ms, "start",
                   lambda state, now: state.start(now))


def stop(store: KeyValueStore, authorizer: Authorizer, token: Optional[str], channel_name: str,
         now_ms: Optional[int] = None) -> dict[str, Any]:
    return _mutate(store, authorizer, token, channel_name, now_ms, "stop",
                   lambda state, now: state.stop())


def pause(store: KeyValueStore, authorizer: Authorizer, token: Optional[str], channel_name: str,
          now_ms: Optional[int] = None) -> dict[str, Any]:
    return _mutate(store, authorizer, token, channel_name, now_ms, "pause",
                   lambda state, now: state.pause(now))


def resume(store: KeyValueStore, authorizer: Authorizer, token: Optional[str], channel_name: str,
           now_ms: Optional[int] = None) -> dict[str, Any]:
    return _mutate(store, authorizer, token, channel_name, now_ms, "resume",
                   lambda state, now: state.resume(now))


def adjust(store: KeyValueStore, authorizer: Authorizer, token: Optional[str], channel_name: str,
           delta_minutes: int, now_ms: Optional[int] = None) -> dict[str, Any]:
    return _mutate(store, authorizer, token, channel_name, now_ms, "adjust",
                   lambda state, now: state.adjust(delta_minutes, now))
