"""Tests for the stream countdown timer state machine.

Timer operations take an explicit ``now_ms`` so elapsed time is simulated
without sleeping.
"""
import pytest

from scheduledesk.errors import InvalidArgument, InvalidState, Unauthorized
from scheduledesk.services import timer_service
from scheduledesk.services.timer_service import TimerState, format_remaining
from scheduledesk.store import keys
from tests.conftest import bearer, create_test_channel, login_channel

T0 = 1_700_000_000_000
TOKEN = "foo-token"
HOUR = 3_600_000
MINUTE = 60_000


def _snapshot(store, now):
    return timer_service.get_snapshot(store, "foo", now_ms=now)


class TestSetDuration:

    def test_one_hour_not_started(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, False, now_ms=T0)
        snap = _snapshot(store, T0 + 50)
        assert snap["remainingMs"] == HOUR
        assert snap["isRunning"] is False
        assert snap["isExpired"] is False
        assert snap["formattedTime"] == "01:00:00"

    def test_start_immediately_counts_down(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 1, True, now_ms=T0)
        snap = _snapshot(store, T0 + 30_000)
        assert snap["remainingMs"] == 30_000
        assert snap["isRunning"] is True

    @pytest.mark.parametrize("hours,minutes", [(0, 0), (-1, 90), (1, -5)])
    def test_invalid_duration(self, store, authorizer, hours, minutes):
        with pytest.raises(InvalidArgument):
            timer_service.set_duration(store, authorizer, TOKEN, "foo", hours, minutes, False, now_ms=T0)
        assert store.get(keys.timer_field_key("foo", "duration")) is None

    def test_set_while_paused_clears_pause(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, True, now_ms=T0)
        timer_service.pause(store, authorizer, TOKEN, "foo", now_ms=T0 + MINUTE)
        out = timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 10, False, now_ms=T0 + 2 * MINUTE)
        assert out["state"] == {"durationMs": 10 * MINUTE, "startTimeMs": None, "pausedAtMs": None,
                                "isRunning": False}


class TestTransitions:

    def test_pause_then_resume_keeps_remaining(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 10, True, now_ms=T0)
        paused = timer_service.pause(store, authorizer, TOKEN, "foo", now_ms=T0 + 4 * MINUTE)
        assert paused["state"]["pausedAtMs"] == 6 * MINUTE
        assert paused["state"]["startTimeMs"] is None

        # Time passing while paused does not count
        assert _snapshot(store, T0 + 20 * MINUTE)["remainingMs"] == 6 * MINUTE

        timer_service.resume(store, authorizer, TOKEN, "foo", now_ms=T0 + 20 * MINUTE)
        snap = _snapshot(store, T0 + 20 * MINUTE)
        assert snap["remainingMs"] == 6 * MINUTE
        assert snap["isRunning"] is True

    def test_pause_when_stopped(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, False, now_ms=T0)
        with pytest.raises(InvalidState):
            timer_service.pause(store, authorizer, TOKEN, "foo", now_ms=T0)

    def test_pause_when_unset(self, store, authorizer):
        with pytest.raises(InvalidState):
            timer_service.pause(store, authorizer, TOKEN, "foo", now_ms=T0)

    def test_resume_when_running(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, True, now_ms=T0)
        with pytest.raises(InvalidState):
            timer_service.resume(store, authorizer, TOKEN, "foo", now_ms=T0)

    def test_resume_without_pause(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, False, now_ms=T0)
        with pytest.raises(InvalidState):
            timer_service.resume(store, authorizer, TOKEN, "foo", now_ms=T0)

    def test_start_from_stopped_uses_duration(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 30, False, now_ms=T0)
        out = timer_service.start(store, authorizer, TOKEN, "foo", now_ms=T0 + HOUR)
        assert out["state"]["startTimeMs"] == T0 + HOUR
        assert _snapshot(store, T0 + HOUR + MINUTE)["remainingMs"] == 29 * MINUTE

    def test_start_from_paused_uses_paused_remaining(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 30, True, now_ms=T0)
        timer_service.pause(store, authorizer, TOKEN, "foo", now_ms=T0 + 10 * MINUTE)
        out = timer_service.start(store, authorizer, TOKEN, "foo", now_ms=T0 + HOUR)
        assert out["state"]["durationMs"] == 20 * MINUTE
        assert out["state"]["pausedAtMs"] is None

    def test_restart_while_running_reanchors(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 30, True, now_ms=T0)
        out = timer_service.start(store, authorizer, TOKEN, "foo", now_ms=T0 + 5 * MINUTE)
        assert out["state"]["durationMs"] == 25 * MINUTE
        assert out["state"]["startTimeMs"] == T0 + 5 * MINUTE
        assert _snapshot(store, T0 + 6 * MINUTE)["remainingMs"] == 24 * MINUTE

    def test_stop_keeps_configured_duration(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 30, True, now_ms=T0)
        stopped = timer_service.stop(store, authorizer, TOKEN, "foo", now_ms=T0 + 10 * MINUTE)
        assert stopped["state"] == {"durationMs": 30 * MINUTE, "startTimeMs": None, "pausedAtMs": None,
                                    "isRunning": False}
        timer_service.start(store, authorizer, TOKEN, "foo", now_ms=T0 + 11 * MINUTE)
        assert _snapshot(store, T0 + 11 * MINUTE)["remainingMs"] == 30 * MINUTE

    def test_stop_when_unset_leaves_timer_unset(self, store, authorizer):
        timer_service.stop(store, authorizer, TOKEN, "foo", now_ms=T0)
        assert store.get(keys.timer_field_key("foo", "duration")) is None
        assert _snapshot(store, T0)["isExpired"] is False


class TestAdjust:

    def test_adjust_while_paused(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 30, True, now_ms=T0)
        timer_service.pause(store, authorizer, TOKEN, "foo", now_ms=T0 + 10 * MINUTE)
        out = timer_service.adjust(store, authorizer, TOKEN, "foo", 10, now_ms=T0 + 15 * MINUTE)
        assert out["state"]["pausedAtMs"] == 30 * MINUTE
        assert out["state"]["durationMs"] == 30 * MINUTE
        assert _snapshot(store, T0 + 40 * MINUTE)["remainingMs"] == 30 * MINUTE

    def test_adjust_while_running_shifts_anchor(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 30, True, now_ms=T0)
        out = timer_service.adjust(store, authorizer, TOKEN, "foo", 5, now_ms=T0 + 10 * MINUTE)
        assert out["snapshot"]["remainingMs"] == 25 * MINUTE
        assert out["state"]["isRunning"] is True
        assert _snapshot(store, T0 + 12 * MINUTE)["remainingMs"] == 23 * MINUTE

    def test_adjust_while_stopped_rewrites_duration(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, False, now_ms=T0)
        out = timer_service.adjust(store, authorizer, TOKEN, "foo", -15, now_ms=T0)
        assert out["state"]["durationMs"] == 45 * MINUTE
        assert out["state"]["startTimeMs"] is None

    @pytest.mark.parametrize("running", [True, False])
    def test_adjust_never_negative(self, store, authorizer, running):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 5, running, now_ms=T0)
        out = timer_service.adjust(store, authorizer, TOKEN, "foo", -10_000, now_ms=T0 + MINUTE)
        assert out["snapshot"]["remainingMs"] == 0
        assert out["state"]["durationMs"] == 0
        assert out["snapshot"]["isExpired"] is True


class TestSnapshot:

    def test_unset_timer(self, store):
        assert _snapshot(store, T0) == {
            "remainingMs": 0, "isRunning": False, "isExpired": False, "formattedTime": "00:00:00",
        }

    def test_expired_reports_not_running(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 0, 1, True, now_ms=T0)
        snap = _snapshot(store, T0 + 2 * MINUTE)
        assert snap["remainingMs"] == 0
        assert snap["isExpired"] is True
        assert snap["isRunning"] is False
        # Stored flag is untouched until the next explicit transition
        assert store.get(keys.timer_field_key("foo", "isRunning")) == "true"

    def test_timers_are_scoped_per_channel(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, False, now_ms=T0)
        assert timer_service.get_snapshot(store, "bar", now_ms=T0)["remainingMs"] == 0

    @pytest.mark.parametrize("ms,expected", [
        (0, "00:00:00"), (-5, "00:00:00"), (999, "00:00:00"), (61_000, "00:01:01"), (HOUR * 25, "25:00:00"),
    ])
    def test_format_remaining(self, ms, expected):
        assert format_remaining(ms) == expected


class TestTimerState:
    """Exactly one of start anchor / paused value / neither at every step."""

    def test_anchor_invariant_across_transitions(self):
        state = TimerState()
        steps = [
            lambda s: s.set_duration(0, 20, False, T0),
            lambda s: s.start(T0 + MINUTE),
            lambda s: s.adjust(3, T0 + 2 * MINUTE),
            lambda s: s.pause(T0 + 3 * MINUTE),
            lambda s: s.adjust(-1, T0 + 4 * MINUTE),
            lambda s: s.resume(T0 + 5 * MINUTE),
            lambda s: s.stop(),
        ]
        for step in steps:
            step(state)
            assert not (state.start_time_ms is not None and state.paused_at_ms is not None)
            assert state.is_running == (state.start_time_ms is not None)


class TestAuthorization:

    def test_rejected_token_changes_nothing(self, store, authorizer):
        timer_service.set_duration(store, authorizer, TOKEN, "foo", 1, 0, True, now_ms=T0)
        for call in (
            lambda: timer_service.pause(store, authorizer, "bar-token", "foo", now_ms=T0 + MINUTE),
            lambda: timer_service.stop(store, authorizer, None, "foo", now_ms=T0 + MINUTE),
            lambda: timer_service.adjust(store, authorizer, "nope", "foo", 30, now_ms=T0 + MINUTE),
            lambda: timer_service.set_duration(store, authorizer, "bar-token", "foo", 0, 1, False),
        ):
            with pytest.raises(Unauthorized):
                call()
        snap = _snapshot(store, T0 + MINUTE)
        assert snap["remainingMs"] == HOUR - MINUTE
        assert snap["isRunning"] is True


class TestTimerApi:

    def test_public_snapshot_and_scoped_writes(self, client):
        create_test_channel(client, "foo")
        token = login_channel(client, "foo")

        assert client.post("/api/timer/foo/duration", json={"hours": 1}).status_code == 401

        resp = client.post("/api/timer/foo/duration", json={"hours": 1, "minutes": 0},
                           headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["state"]["durationMs"] == HOUR

        snap = client.get("/api/timer/foo").json()
        assert snap["remainingMs"] == HOUR
        assert snap["isRunning"] is False

        assert client.post("/api/timer/foo/pause", headers=bearer(token)).status_code == 409
        assert client.post("/api/timer/foo/start", headers=bearer(token)).status_code == 200
        assert client.post("/api/timer/foo/resume", headers=bearer(token)).status_code == 409
        assert client.post("/api/timer/foo/pause", headers=bearer(token)).status_code == 200

        adjusted = client.post("/api/timer/foo/adjust", json={"deltaMinutes": 10}, headers=bearer(token))
        assert adjusted.status_code == 200
        assert HOUR + 9 * MINUTE < adjusted.json()["snapshot"]["remainingMs"] <= HOUR + 10 * MINUTE

        assert client.post("/api/timer/foo/stop", headers=bearer(token)).json()["state"]["isRunning"] is False

    def test_zero_duration_is_400(self, client):
        create_test_channel(client, "foo")
        token = login_channel(client, "foo")
        resp = client.post("/api/timer/foo/duration", json={"hours": 0, "minutes": 0}, headers=bearer(token))
        assert resp.status_code == 400
