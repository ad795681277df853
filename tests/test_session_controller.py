"""Tests for SessionController lifecycle and event ingestion."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest

from cadence.models.position import PositionFix
from cadence.models.session import ActivityType, RecordingState, SessionModel
from cadence.recording import RecorderOptions, SessionController, StaticAuthorizer
from cadence.tracking.distance import distance_between
from tests.fakes import FakePositionSource, FakeTimer, start_recording

T0 = datetime(2025, 6, 1, 7, 0, tzinfo=UTC)


def fix(lat: float, lon: float, offset: int = 0) -> PositionFix:
    return PositionFix(
        timestamp=T0 + timedelta(seconds=offset),
        latitude=lat,
        longitude=lon,
        accuracy_meters=4.0,
    )


def record_states(controller: SessionController) -> list[SessionModel]:
    seen: list[SessionModel] = []
    controller.on_change(seen.append)
    return seen


class TestStart:
    """Tests for starting a recording."""

    @pytest.mark.anyio
    async def test_start_enters_recording(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        started = await controller.start()

        assert started is True
        model = controller.model
        assert model.state == RecordingState.RECORDING
        assert model.start_time is not None
        assert model.elapsed_seconds == 0
        assert model.positions == ()
        assert len(source.active) == 1
        assert timer.is_running

    @pytest.mark.anyio
    async def test_start_uses_clock(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        controller = SessionController(
            source, timer, StaticAuthorizer(), clock=lambda: T0
        )

        await controller.start()

        assert controller.model.start_time == T0

    @pytest.mark.anyio
    async def test_start_denied_stays_idle(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        controller = SessionController(source, timer, StaticAuthorizer(granted=False))
        seen = record_states(controller)

        started = await controller.start()

        assert started is False
        assert controller.model.state == RecordingState.IDLE
        assert source.subscribe_calls == 0
        assert not timer.is_running
        assert seen == []

    @pytest.mark.anyio
    async def test_start_authorizer_error_is_denial(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        class _BrokenAuthorizer:
            async def request(self) -> bool:
                raise RuntimeError("permission service unavailable")

        controller = SessionController(source, timer, _BrokenAuthorizer())

        assert await controller.start() is False
        assert controller.model.is_idle

    @pytest.mark.anyio
    async def test_start_when_not_idle_is_noop(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        await controller.start()
        seen = record_states(controller)

        assert await controller.start() is False
        assert source.subscribe_calls == 1
        assert seen == []

    @pytest.mark.anyio
    async def test_start_preserves_activity_type_in_single_notification(
        self, controller: SessionController
    ) -> None:
        controller.set_activity_type(ActivityType.ROAD_BIKING)
        seen = record_states(controller)

        await controller.start()

        assert len(seen) == 1
        assert seen[0].state == RecordingState.RECORDING
        assert seen[0].activity_type == ActivityType.ROAD_BIKING

    @pytest.mark.anyio
    async def test_sensor_acquisition_failure_still_records(
        self,
        controller: SessionController,
        source: FakePositionSource,
        timer: FakeTimer,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        source.fail_subscribe = RuntimeError("gps offline")

        with caplog.at_level(logging.ERROR):
            started = await controller.start()

        assert started is True
        assert controller.model.is_recording
        assert controller.model.positions == ()
        assert controller.model.last_error is None
        assert not controller.has_location_subscription
        assert "Failed to start location tracking" in caplog.text

        timer.tick(3)
        assert controller.model.elapsed_seconds == 3

    @pytest.mark.anyio
    async def test_fix_delivered_during_subscribe_is_recorded(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        source.emit_on_subscribe = fix(0.0, 0.0)

        await controller.start()

        assert controller.model.points_count == 1


class TestLifecycle:
    """Tests for the pause/resume/finish state machine."""

    def test_full_lifecycle_states(self, controller: SessionController) -> None:
        states: list[RecordingState] = [controller.model.state]
        controller.on_change(lambda m: states.append(m.state))

        start_recording(controller)
        assert controller.get_summary() is None
        controller.pause()
        assert controller.get_summary() is None
        controller.resume()
        assert controller.get_summary() is None
        controller.finish()

        assert states == [
            RecordingState.IDLE,
            RecordingState.RECORDING,
            RecordingState.PAUSED,
            RecordingState.RECORDING,
            RecordingState.COMPLETED,
        ]
        assert controller.get_summary() is not None

    def test_pause_keeps_resources(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        start_recording(controller)

        assert controller.pause() is True

        assert len(source.active) == 1
        assert timer.is_running
        assert source.unsubscribe_calls == 0

    def test_pause_and_resume_wrong_state_are_silent(
        self, controller: SessionController
    ) -> None:
        seen = record_states(controller)

        assert controller.pause() is False
        assert controller.resume() is False
        start_recording(controller)
        seen.clear()
        assert controller.resume() is False

        assert seen == []
        assert controller.model.is_recording

    def test_finish_releases_resources(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        start_recording(controller)

        assert controller.finish() is True

        assert controller.model.is_completed
        assert source.active == {}
        assert not timer.is_running
        assert not controller.has_location_subscription
        assert not controller.timer_running

    def test_finish_from_paused(self, controller: SessionController) -> None:
        start_recording(controller)
        controller.pause()

        assert controller.finish() is True
        assert controller.model.is_completed

    def test_finish_from_idle_is_noop(self, controller: SessionController) -> None:
        seen = record_states(controller)

        assert controller.finish() is False
        assert controller.model.is_idle
        assert seen == []

    def test_finish_releases_before_state_flip(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)
        active_during_notify: list[int] = []
        controller.on_change(lambda m: active_during_notify.append(len(source.active)))

        controller.finish()

        assert active_during_notify == [0]

    def test_resume_from_completed_enters_paused(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        source.emit(fix(0.0, 0.0))
        timer.tick(2)
        controller.finish()

        assert controller.resume_from_completed() is True

        model = controller.model
        assert model.is_paused
        assert model.points_count == 1
        assert model.elapsed_seconds == 2
        assert len(source.active) == 1
        assert timer.is_running
        assert source.subscribe_calls == 2

        timer.tick()
        assert controller.model.elapsed_seconds == 2
        controller.resume()
        timer.tick()
        assert controller.model.elapsed_seconds == 3

    def test_resume_from_completed_wrong_state_is_noop(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)

        assert controller.resume_from_completed() is False
        assert source.subscribe_calls == 1
        assert controller.model.is_recording

    def test_reset_to_idle_only_from_completed(
        self, controller: SessionController
    ) -> None:
        controller.set_activity_type(ActivityType.ROAD_BIKING)
        start_recording(controller)
        assert controller.reset_to_idle() is False

        controller.finish()
        assert controller.reset_to_idle() is True

        model = controller.model
        assert model.is_idle
        assert model.activity_type == ActivityType.ROAD_BIKING
        assert model.start_time is None
        assert controller.get_summary() is None

    def test_completed_session_can_be_restarted(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)
        source.emit(fix(0.0, 0.0))
        controller.finish()
        controller.reset_to_idle()

        start_recording(controller)

        assert controller.model.is_recording
        assert controller.model.positions == ()
        assert len(source.active) == 1


class TestDiscard:
    """Tests for discarding recordings."""

    @pytest.mark.parametrize(
        "setup",
        ["idle", "recording", "paused", "completed"],
    )
    def test_discard_from_any_state(
        self,
        setup: str,
        controller: SessionController,
        source: FakePositionSource,
        timer: FakeTimer,
    ) -> None:
        controller.set_activity_type(ActivityType.ROAD_BIKING)
        if setup != "idle":
            start_recording(controller)
            source.emit(fix(0.0, 0.0))
            source.emit(fix(0.0, 0.001))
            timer.tick(5)
        if setup == "paused":
            controller.pause()
        if setup == "completed":
            controller.finish()

        controller.discard()

        model = controller.model
        assert model.state == RecordingState.IDLE
        assert model.positions == ()
        assert model.last_position is None
        assert model.total_distance_meters == 0
        assert model.elapsed_seconds == 0
        assert model.start_time is None
        assert model.activity_type == ActivityType.ROAD_BIKING
        assert source.active == {}
        assert not timer.is_running

    def test_discard_is_idempotent(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)

        controller.discard()
        controller.discard()

        assert source.unsubscribe_calls == 1
        assert controller.model.is_idle


class TestActivityType:
    """Tests for activity type changes."""

    def test_set_activity_type_when_idle(self, controller: SessionController) -> None:
        seen = record_states(controller)

        assert controller.set_activity_type(ActivityType.ROAD_BIKING) is True

        assert controller.model.activity_type == ActivityType.ROAD_BIKING
        assert len(seen) == 1

    def test_set_same_activity_type_is_silent(
        self, controller: SessionController
    ) -> None:
        seen = record_states(controller)

        assert controller.set_activity_type(ActivityType.RUNNING) is False
        assert seen == []

    @pytest.mark.parametrize("pause", [False, True])
    def test_set_activity_type_ignored_while_active(
        self, pause: bool, controller: SessionController
    ) -> None:
        start_recording(controller)
        if pause:
            controller.pause()

        assert controller.set_activity_type(ActivityType.ROAD_BIKING) is False
        assert controller.model.activity_type == ActivityType.RUNNING

    def test_initial_activity_type(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        controller = SessionController(
            source,
            timer,
            StaticAuthorizer(),
            activity_type=ActivityType.ROAD_BIKING,
        )
        assert controller.model.activity_type == ActivityType.ROAD_BIKING


class TestTicks:
    """Tests for timer tick ingestion."""

    def test_ticks_advance_only_while_recording(
        self, controller: SessionController, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        timer.tick(3)
        controller.pause()
        timer.tick(5)
        controller.resume()
        timer.tick(2)

        assert controller.model.elapsed_seconds == 5

    def test_elapsed_never_decreases(
        self, controller: SessionController, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        seen = record_states(controller)

        for step in range(10):
            timer.tick()
            if step == 3:
                controller.pause()
            if step == 6:
                controller.resume()
        controller.finish()

        elapsed = [m.elapsed_seconds for m in seen]
        assert elapsed == sorted(elapsed)
        assert controller.model.elapsed_seconds == 7

    def test_each_tick_notifies(
        self, controller: SessionController, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        seen = record_states(controller)

        timer.tick(4)

        assert [m.elapsed_seconds for m in seen] == [1, 2, 3, 4]

    def test_tick_after_finish_is_ignored(
        self, controller: SessionController, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        callback = timer.callback
        assert callback is not None
        controller.finish()

        callback()

        assert controller.model.elapsed_seconds == 0


class TestFixes:
    """Tests for position fix ingestion."""

    def test_fixes_accumulate_distance(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        fixes = [fix(0.0, 0.0, 0), fix(0.0, 0.0001, 1), fix(0.0001, 0.0001, 2)]
        start_recording(controller)

        for f in fixes:
            source.emit(f)

        model = controller.model
        expected = distance_between(fixes[0], fixes[1]) + distance_between(
            fixes[1], fixes[2]
        )
        assert model.positions == tuple(fixes)
        assert model.last_position == fixes[-1]
        assert model.total_distance_meters == pytest.approx(expected)

    def test_distance_is_non_decreasing(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)
        seen = record_states(controller)

        for i in range(10):
            source.emit(fix(0.0001 * (i % 3), 0.0001 * i, i))

        distances = [m.total_distance_meters for m in seen]
        assert distances == sorted(distances)
        assert len(seen) == 10

    def test_fix_while_paused_is_dropped(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)
        source.emit(fix(0.0, 0.0, 0))
        controller.pause()
        before = controller.model
        seen = record_states(controller)

        source.emit(fix(0.0, 0.001, 1))
        source.emit(fix(0.0, 0.002, 2))

        assert seen == []
        assert controller.model.points_count == before.points_count
        assert controller.model.total_distance_meters == before.total_distance_meters

        controller.resume()
        source.emit(fix(0.0, 0.0001, 3))
        # Distance continues from the last accepted fix, not the dropped ones
        assert controller.model.total_distance_meters == pytest.approx(11.12, abs=0.01)

    def test_minimum_data_scenario(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)

        source.emit(fix(0.0, 0.0))
        assert controller.has_minimum_data() is False

        source.emit(fix(0.0, 0.0001))
        assert controller.model.total_distance_meters == pytest.approx(11.12, abs=0.01)
        assert controller.has_minimum_data() is True

    def test_single_far_fix_is_not_minimum_data(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)

        source.emit(fix(45.0, 45.0))

        assert controller.has_minimum_data() is False

    def test_short_track_is_not_minimum_data(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)

        source.emit(fix(0.0, 0.0))
        source.emit(fix(0.0, 0.00005))

        assert controller.has_minimum_data() is False

    def test_minimum_data_thresholds_are_configurable(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        controller = SessionController(
            source,
            timer,
            StaticAuthorizer(),
            options=RecorderOptions(min_points=3, min_distance_meters=1.0),
        )
        start_recording(controller)
        source.emit(fix(0.0, 0.0))
        source.emit(fix(0.0, 0.0001))
        assert controller.has_minimum_data() is False

        source.emit(fix(0.0, 0.0002))
        assert controller.has_minimum_data() is True

    @pytest.mark.parametrize(
        "bad",
        [
            None,
            "not a fix",
            PositionFix(T0, float("nan"), 0.0, 5.0),
            PositionFix(T0, 91.0, 0.0, 5.0),
            PositionFix(T0, 0.0, 181.0, 5.0),
            PositionFix(T0, 0.0, 0.0, -1.0),
            PositionFix(datetime(2025, 6, 1, 7, 0), 0.0, 0.0, 5.0),
        ],
    )
    def test_malformed_fix_is_dropped(
        self,
        bad: object,
        controller: SessionController,
        source: FakePositionSource,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        start_recording(controller)
        source.emit(fix(0.0, 0.0))

        with caplog.at_level(logging.WARNING):
            source.emit(bad)

        assert controller.model.points_count == 1
        assert controller.model.last_error is None
        assert "malformed" in caplog.text

    def test_naive_timestamps_never_reach_the_model(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)

        source.emit(PositionFix(datetime(2025, 1, 1, 0, 0, 0), 0.0, 0.0, 5.0))
        source.emit(PositionFix(datetime(2025, 1, 1, 0, 0, 3), 0.0, 0.0001, 5.0))

        assert controller.model.points_count == 0
        assert controller.model.current_speed_ms() == 0.0

    def test_stale_subscription_fix_is_dropped(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)
        controller.finish()
        controller.resume_from_completed()
        controller.resume()

        source.emit_stale(fix(10.0, 10.0))

        assert controller.model.points_count == 0

        source.emit(fix(0.0, 0.0))
        assert controller.model.points_count == 1


class TestSensorErrors:
    """Tests for mid-session sensor errors."""

    def test_sensor_error_is_logged_and_swallowed(
        self,
        controller: SessionController,
        source: FakePositionSource,
        timer: FakeTimer,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        start_recording(controller)
        seen = record_states(controller)

        with caplog.at_level(logging.WARNING):
            source.emit_error(RuntimeError("signal lost"))

        assert seen == []
        assert controller.model.is_recording
        assert "signal lost" in caplog.text

        timer.tick(2)
        assert controller.model.elapsed_seconds == 2

    def test_sensor_errors_recorded_when_enabled(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        controller = SessionController(
            source,
            timer,
            StaticAuthorizer(),
            options=RecorderOptions(record_sensor_errors=True),
        )
        start_recording(controller)

        source.emit_error(RuntimeError("signal lost"))

        assert controller.model.last_error == "GPS tracking error: signal lost"
        assert controller.model.is_recording

        controller.discard()
        assert controller.model.last_error is None

    @pytest.mark.anyio
    async def test_acquisition_failure_recorded_when_enabled(
        self, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        source.fail_subscribe = RuntimeError("gps offline")
        controller = SessionController(
            source,
            timer,
            StaticAuthorizer(),
            options=RecorderOptions(record_sensor_errors=True),
        )

        await controller.start()

        assert controller.model.is_recording
        assert controller.model.last_error == (
            "Failed to start location tracking: gps offline"
        )


class TestObservers:
    """Tests for observer registration and delivery."""

    def test_observer_can_be_removed(
        self, controller: SessionController, timer: FakeTimer
    ) -> None:
        seen: list[SessionModel] = []
        remove = controller.on_change(seen.append)
        start_recording(controller)

        remove()
        remove()
        timer.tick()

        assert len(seen) == 1

    def test_failing_observer_does_not_block_others(
        self, controller: SessionController, caplog: pytest.LogCaptureFixture
    ) -> None:
        def _broken(model: SessionModel) -> None:
            raise ValueError("boom")

        controller.on_change(_broken)
        seen = record_states(controller)

        with caplog.at_level(logging.ERROR):
            start_recording(controller)

        assert len(seen) == 1
        assert controller.model.is_recording
        assert "Session observer failed" in caplog.text

    def test_reentrant_operation_keeps_delivery_order(
        self, controller: SessionController
    ) -> None:
        first: list[RecordingState] = []
        second: list[RecordingState] = []

        def _pause_on_record(model: SessionModel) -> None:
            first.append(model.state)
            if model.is_recording:
                controller.pause()

        controller.on_change(_pause_on_record)
        controller.on_change(lambda m: second.append(m.state))

        start_recording(controller)

        expected = [RecordingState.RECORDING, RecordingState.PAUSED]
        assert first == expected
        assert second == expected
        assert controller.model.is_paused

    def test_discard_from_observer_on_start_releases_everything(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        def _discard_on_record(model: SessionModel) -> None:
            if model.is_recording:
                controller.discard()

        controller.on_change(_discard_on_record)

        start_recording(controller)

        assert controller.model.is_idle
        assert source.active == {}
        assert not timer.is_running
        assert not controller.has_location_subscription
        assert not controller.timer_running

    def test_discard_from_observer_on_resume_from_completed(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        controller.finish()

        def _discard_on_pause(model: SessionModel) -> None:
            if model.is_paused:
                controller.discard()

        controller.on_change(_discard_on_pause)

        assert controller.resume_from_completed() is True

        assert controller.model.is_idle
        assert source.active == {}
        assert not timer.is_running
        assert not controller.has_location_subscription

    def test_resources_in_place_when_observers_see_recording(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        seen: list[tuple[int, bool]] = []
        controller.on_change(
            lambda m: seen.append((len(source.active), timer.is_running))
        )

        start_recording(controller)

        assert seen == [(1, True)]

    def test_model_snapshots_are_not_mutated(
        self, controller: SessionController, source: FakePositionSource
    ) -> None:
        start_recording(controller)
        snapshot = controller.get_model()

        source.emit(fix(0.0, 0.0))

        assert snapshot.positions == ()
        assert controller.get_model().points_count == 1


class TestSummary:
    """Tests for summary extraction."""

    def test_summary_reflects_completed_session(
        self,
        controller: SessionController,
        source: FakePositionSource,
        timer: FakeTimer,
    ) -> None:
        controller.set_activity_type(ActivityType.ROAD_BIKING)
        start_recording(controller)
        fixes = [fix(0.0, 0.0, 0), fix(0.0, 0.0001, 1)]
        for f in fixes:
            source.emit(f)
        timer.tick(7)
        controller.finish()

        summary = controller.get_summary()

        assert summary is not None
        assert summary.activity_type == ActivityType.ROAD_BIKING
        assert summary.elapsed_seconds == 7
        assert summary.positions == tuple(fixes)
        assert summary.total_distance_meters == pytest.approx(11.12, abs=0.01)
        assert summary.start_time == controller.model.start_time


class TestClose:
    """Tests for releasing resources on shutdown."""

    def test_close_releases_without_changing_model(
        self, controller: SessionController, source: FakePositionSource, timer: FakeTimer
    ) -> None:
        start_recording(controller)
        seen = record_states(controller)

        controller.close()
        controller.close()

        assert seen == []
        assert controller.model.is_recording
        assert source.active == {}
        assert not timer.is_running
        assert timer.stop_calls == 1

    def test_failing_timer_stop_does_not_block_finish(
        self,
        source: FakePositionSource,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        class _StuckTimer(FakeTimer):
            def stop(self) -> None:
                super().stop()
                raise RuntimeError("timer wedged")

        controller = SessionController(source, _StuckTimer(), StaticAuthorizer())
        start_recording(controller)

        with caplog.at_level(logging.ERROR):
            assert controller.finish() is True

        assert controller.model.is_completed
        assert source.active == {}
        assert not controller.timer_running
        assert "Failed to stop session timer" in caplog.text

        controller.discard()
        assert controller.model.is_idle
