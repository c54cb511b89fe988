"""
Tests for the globe camera state machine.
The pure transition function is driven with explicit timestamps; the
controller is driven with a hand-cranked clock. No real timers involved.
"""

from __future__ import annotations

import pytest

from travio_geo.config import NavigationConfig
from travio_geo.gazetteer import Place, get_gazetteer
from travio_geo.navigation import (
    EaseKind,
    FlyTo,
    Frame,
    InteractionEnd,
    InteractionStart,
    NavigationController,
    NavigationMode,
    NavigationState,
    ResetView,
    SpinTick,
    ToggleSpin,
    ease_in_out_quad,
    initial_state,
    linear,
    spin_speed,
    transition,
    wrap_longitude,
)

CONFIG = NavigationConfig()
PARIS = (2.3522, 48.8566)
TOKYO = (139.6917, 35.6895)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller(clock):
    return NavigationController(get_gazetteer(), CONFIG, clock=clock)


def run(state: NavigationState, *events) -> NavigationState:
    for event in events:
        state = transition(state, event, CONFIG)
    return state


# ── Helpers ───────────────────────────────────────────────────────────

class TestEasing:
    def test_linear(self):
        assert linear(0.25) == 0.25

    def test_quad_endpoints_and_midpoint(self):
        assert ease_in_out_quad(0.0) == 0.0
        assert ease_in_out_quad(0.5) == pytest.approx(0.5)
        assert ease_in_out_quad(1.0) == pytest.approx(1.0)

    def test_quad_accelerates_then_decelerates(self):
        assert ease_in_out_quad(0.25) < 0.25
        assert ease_in_out_quad(0.75) > 0.75

    def test_wrap_longitude(self):
        assert wrap_longitude(10.0) == 10.0
        assert wrap_longitude(-180.0) == -180.0
        assert wrap_longitude(-181.0) == pytest.approx(179.0)
        assert wrap_longitude(190.0) == pytest.approx(-170.0)


class TestSpinSpeed:
    def test_full_speed_at_low_zoom(self):
        assert spin_speed(1.0, CONFIG) == pytest.approx(1.5)  # 360 / 240

    def test_full_speed_at_threshold(self):
        assert spin_speed(3.0, CONFIG) == pytest.approx(1.5)

    def test_attenuated_between_thresholds(self):
        assert spin_speed(4.0, CONFIG) == pytest.approx(0.75)

    def test_zero_at_and_above_cutoff(self):
        assert spin_speed(5.0, CONFIG) == 0.0
        assert spin_speed(12.0, CONFIG) == 0.0


# ── Transition function ───────────────────────────────────────────────

class TestInitialState:
    def test_overview(self):
        state = initial_state(CONFIG)
        assert state.center == (30.0, 15.0)
        assert state.zoom == 1.0
        assert state.spin_enabled
        assert state.mode is NavigationMode.IDLE_SPINNING
        assert state.target is None


class TestSpinning:
    def test_tick_starts_one_second_linear_ease(self):
        state = run(initial_state(CONFIG), SpinTick(0.0))
        assert state.ease.kind is EaseKind.SPIN
        assert state.ease.duration == 1.0
        assert state.ease.easing == "linear"
        assert state.ease.to_center == pytest.approx((28.5, 15.0))
        assert state.mode is NavigationMode.IDLE_SPINNING

    def test_constant_rate_within_window(self):
        state = run(initial_state(CONFIG), SpinTick(0.0), Frame(0.5))
        assert state.center[0] == pytest.approx(29.25)
        state = run(state, Frame(1.0))
        assert state.center[0] == pytest.approx(28.5)
        assert state.ease is None

    def test_successive_ticks_keep_rotating(self):
        state = run(initial_state(CONFIG), SpinTick(0.0), SpinTick(1.0), SpinTick(2.0), Frame(3.0))
        assert state.center[0] == pytest.approx(30.0 - 4.5)

    def test_early_tick_extends_unfinished_window(self):
        state = run(initial_state(CONFIG), SpinTick(0.01), SpinTick(1.0))
        # Previous window still had 0.01 s to go; its step is kept
        assert state.ease.to_center[0] == pytest.approx(27.0)
        assert state.ease.started_at == 1.0
        assert state.center[0] == pytest.approx(30.0 - 1.5 * 0.99)

    def test_jittered_ticks_keep_full_speed(self):
        latencies = [0.0, 0.013, 0.002, 0.011, 0.004, 0.009, 0.001, 0.012, 0.003, 0.010]
        events = [SpinTick(n + lag) for n, lag in enumerate(latencies)]
        events += [Frame(i * 0.05) for i in range(1, 240)]
        events.sort(key=lambda e: e.at)
        state = run(initial_state(CONFIG), *events)
        assert state.ease is None
        assert state.center[0] == pytest.approx(30.0 - 15.0)

    def test_no_rotation_above_cutoff_zoom(self):
        state = NavigationState(center=PARIS, zoom=12.0)
        assert run(state, SpinTick(0.0)) == state

    def test_slower_rotation_between_thresholds(self):
        state = run(NavigationState(center=(0.0, 0.0), zoom=4.0), SpinTick(0.0), Frame(1.0))
        assert state.center[0] == pytest.approx(-0.75)

    def test_rotation_wraps_across_antimeridian(self):
        state = run(NavigationState(center=(-179.5, 0.0), zoom=1.0), SpinTick(0.0), Frame(1.0))
        assert state.center[0] == pytest.approx(179.0)

    def test_tick_ignored_while_user_interacting(self):
        state = run(initial_state(CONFIG), InteractionStart(0.0), SpinTick(0.5), Frame(2.0))
        assert state.center == (30.0, 15.0)

    def test_tick_ignored_when_spin_disabled(self):
        state = run(initial_state(CONFIG), ToggleSpin(0.0), SpinTick(0.5), Frame(2.0))
        assert state.center == (30.0, 15.0)

    def test_tick_does_not_touch_animation(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS))
        ease = state.ease
        state = run(state, SpinTick(0.0))
        assert state.ease == ease


class TestInteraction:
    def test_start_pauses(self):
        state = run(initial_state(CONFIG), InteractionStart(0.0))
        assert state.is_user_interacting
        assert state.mode is NavigationMode.PAUSED

    def test_start_stops_spin_where_it_is(self):
        state = run(initial_state(CONFIG), SpinTick(0.0), InteractionStart(0.5))
        assert state.ease is None
        assert state.center[0] == pytest.approx(29.25)

    def test_end_resumes_after_debounce(self):
        state = run(initial_state(CONFIG), InteractionStart(0.0), InteractionEnd(1.0))
        assert state.mode is NavigationMode.PAUSED
        assert run(state, Frame(1.05)).mode is NavigationMode.PAUSED
        assert run(state, Frame(1.2)).mode is NavigationMode.IDLE_SPINNING

    def test_new_start_cancels_pending_resume(self):
        state = run(initial_state(CONFIG), InteractionStart(0.0), InteractionEnd(1.0),
                    InteractionStart(1.05), Frame(2.0))
        assert state.is_user_interacting

    def test_end_without_start_is_noop(self):
        state = initial_state(CONFIG)
        assert run(state, InteractionEnd(0.0)) == state

    def test_interaction_cancels_fly_to(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS), InteractionStart(1.0))
        assert not state.is_animating
        assert state.target is None
        assert state.center != PARIS


class TestFlyTo:
    def test_enters_animating(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS))
        assert state.mode is NavigationMode.ANIMATING
        assert state.target == PARIS
        assert state.ease.kind is EaseKind.FLY
        assert state.ease.to_zoom == 12.0
        assert state.ease.duration == 2.5
        assert state.ease.easing == "ease_in_out_quad"

    def test_midpoint_uses_quadratic_easing(self):
        state = run(NavigationState(center=(0.0, 0.0), zoom=2.0), FlyTo(0.0, (10.0, 10.0)),
                    Frame(0.625))  # t = 0.25 -> eased 0.125
        assert state.center == pytest.approx((1.25, 1.25))
        assert state.zoom == pytest.approx(2.0 + 10.0 * 0.125)

    def test_lands_exactly_and_resumes_spin(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS), Frame(2.5))
        assert state.center == PARIS
        assert state.zoom == 12.0
        assert not state.is_animating
        assert state.mode is NavigationMode.IDLE_SPINNING

    def test_lands_paused_when_spin_disabled(self):
        state = run(initial_state(CONFIG), ToggleSpin(0.0), FlyTo(0.0, PARIS), Frame(3.0))
        assert state.center == PARIS
        assert state.mode is NavigationMode.PAUSED

    def test_superseded_mid_flight(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS), Frame(1.0), FlyTo(1.0, TOKYO))
        assert state.target == TOKYO
        # New leg starts from wherever the camera was, not from Paris
        assert state.ease.from_center != PARIS
        assert state.ease.started_at == 1.0
        state = run(state, Frame(3.5))
        assert state.center == TOKYO
        assert not state.is_animating

    def test_supersede_before_any_frame(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS), FlyTo(0.0, TOKYO))
        assert state.ease.from_center == (30.0, 15.0)
        assert state.target == TOKYO

    def test_short_way_around(self):
        state = run(NavigationState(center=(170.0, 0.0), zoom=1.0), FlyTo(0.0, (-170.0, 0.0)),
                    Frame(1.25))
        # Halfway along a 20 degree eastward hop, not 340 degrees west
        assert state.center[0] == pytest.approx(180.0)

    def test_explicit_zoom(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS, zoom=8.0))
        assert state.ease.to_zoom == 8.0


class TestResetView:
    def test_linear_and_longer_than_fly(self):
        state = run(NavigationState(center=PARIS, zoom=12.0), ResetView(0.0))
        assert state.mode is NavigationMode.ANIMATING
        assert state.ease.kind is EaseKind.RESET
        assert state.ease.easing == "linear"
        assert state.ease.duration == 2.0
        assert state.target == (30.0, 15.0)

    def test_linear_progress(self):
        state = run(NavigationState(center=(10.0, 5.0), zoom=11.0), ResetView(0.0), Frame(1.0))
        assert state.center == pytest.approx((20.0, 10.0))
        assert state.zoom == pytest.approx(6.0)

    def test_completion_rule(self):
        state = run(NavigationState(center=PARIS, zoom=12.0), ResetView(0.0), Frame(2.0))
        assert state.center == (30.0, 15.0)
        assert state.zoom == 1.0
        assert state.mode is NavigationMode.IDLE_SPINNING

    def test_reset_supersedes_fly(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS), Frame(1.0), ResetView(1.0), Frame(5.0))
        assert state.center == (30.0, 15.0)


class TestToggleSpin:
    def test_disable_pauses(self):
        state = run(initial_state(CONFIG), ToggleSpin(0.0))
        assert not state.spin_enabled
        assert state.mode is NavigationMode.PAUSED

    def test_disable_stops_rotation_keeps_camera(self):
        state = run(initial_state(CONFIG), SpinTick(0.0), Frame(0.5), ToggleSpin(0.5), Frame(5.0))
        assert state.center[0] == pytest.approx(29.25)
        assert state.ease is None

    def test_twice_restores(self):
        start = initial_state(CONFIG)
        state = run(start, ToggleSpin(0.0), ToggleSpin(0.0))
        assert state.spin_enabled == start.spin_enabled
        assert state.center == start.center
        assert state.mode is NavigationMode.IDLE_SPINNING

    def test_enable_while_interacting_stays_paused(self):
        state = run(initial_state(CONFIG), ToggleSpin(0.0), InteractionStart(0.0), ToggleSpin(0.0))
        assert state.spin_enabled
        assert state.mode is NavigationMode.PAUSED

    def test_toggle_does_not_cancel_fly(self):
        state = run(initial_state(CONFIG), FlyTo(0.0, PARIS), ToggleSpin(0.1))
        assert state.is_animating
        assert state.target == PARIS


class TestUnknownEvent:
    def test_raises(self):
        with pytest.raises(TypeError):
            transition(initial_state(CONFIG), object(), CONFIG)  # type: ignore[arg-type]


# ── Controller ────────────────────────────────────────────────────────

class TestController:
    def test_fly_to_by_name(self, controller, clock):
        assert controller.fly_to("Paris") is True
        assert controller.mode is NavigationMode.ANIMATING
        assert controller.state.target == PARIS
        clock.advance(2.5)
        controller.advance()
        assert controller.state.center == PARIS

    def test_fly_to_place(self, controller):
        assert controller.fly_to(get_gazetteer().lookup("Tokyo"))
        assert controller.state.target == TOKYO

    def test_fly_to_unknown_is_noop(self, controller, caplog):
        before = controller.state
        assert controller.fly_to("Atlantis") is False
        assert controller.state == before
        assert "Atlantis" in caplog.text

    def test_fly_to_place_outside_gazetteer_is_noop(self, controller):
        assert controller.fly_to(Place("Atlantis", 0.0, 0.0)) is False
        assert controller.state.target is None

    def test_fly_a_then_b_ends_at_b(self, controller, clock):
        controller.fly_to("Paris")
        clock.advance(0.5)
        controller.fly_to("Tokyo")
        assert controller.state.target == TOKYO
        visited = []
        controller.subscribe(lambda s: visited.append(s.center))
        for _ in range(60):
            clock.advance(0.05)
            controller.advance()
        assert controller.state.center == TOKYO
        assert PARIS not in visited

    def test_reset_view(self, controller, clock):
        controller.fly_to("Paris")
        clock.advance(3.0)
        controller.advance()
        controller.reset_view()
        assert controller.state.target == (30.0, 15.0)
        clock.advance(2.0)
        controller.advance()
        assert controller.state.center == (30.0, 15.0)
        assert controller.state.zoom == 1.0

    def test_toggle_spin_twice(self, controller):
        center = controller.state.center
        first = controller.state.spin_enabled
        assert controller.toggle_spin() is (not first)
        assert controller.toggle_spin() is first
        assert controller.state.center == center

    def test_tick_rotates_with_clock(self, controller, clock):
        controller.tick()
        clock.advance(1.0)
        controller.advance()
        assert controller.state.center[0] == pytest.approx(28.5)

    def test_interaction_round_trip(self, controller, clock):
        controller.interaction_start()
        assert controller.mode is NavigationMode.PAUSED
        controller.interaction_end()
        clock.advance(0.2)
        controller.advance()
        assert controller.mode is NavigationMode.IDLE_SPINNING

    def test_subscribers_notified_on_change_only(self, controller, clock):
        seen = []
        unsubscribe = controller.subscribe(seen.append)
        controller.advance()  # nothing moving
        assert seen == []
        controller.fly_to("Paris")
        assert len(seen) == 1
        unsubscribe()
        controller.reset_view()
        assert len(seen) == 1
