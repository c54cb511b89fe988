"""
Globe camera state machine.

The camera is either spinning slowly while idle, paused (the user is
dragging, or spinning is switched off), or animating toward a target
(a city fly-to or the reset-to-overview).

All behaviour lives in the pure function `transition(state, event, config)`.
Every event carries its own timestamp, so the machine can be driven by a real
scheduler in the service and by a hand-cranked clock in tests.
`NavigationController` owns the single state instance of a view, stamps
events with its clock and notifies subscribers when the state changes.

Two event sources run independently:
  - SpinTick (every `spin_interval` seconds): starts a one-second linear ease
    that moves the longitude by the rotation speed, if the globe is idle.
  - Frame: advances whatever ease is in flight and completes it when due.
A tick never stops an animation; it is simply ignored unless the globe is
idle.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Union

from travio_geo.config import NavigationConfig, get_settings
from travio_geo.gazetteer import Gazetteer, Place, get_gazetteer

logger = logging.getLogger(__name__)

LngLat = tuple[float, float]


class NavigationMode(str, Enum):
    IDLE_SPINNING = "idle_spinning"
    PAUSED = "paused"
    ANIMATING = "animating"


class EaseKind(str, Enum):
    SPIN = "spin"
    FLY = "fly"
    RESET = "reset"


# ── Easing curves ─────────────────────────────────────────────────────

def linear(t: float) -> float:
    return t


def ease_in_out_quad(t: float) -> float:
    """Accelerate through the first half, decelerate through the second."""
    return 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t


EASINGS: dict[str, Callable[[float], float]] = {
    "linear": linear,
    "ease_in_out_quad": ease_in_out_quad,
}


def wrap_longitude(lng: float) -> float:
    if -180.0 <= lng <= 180.0:
        return lng
    return (lng + 180.0) % 360.0 - 180.0


def spin_speed(zoom: float, config: NavigationConfig) -> float:
    """Degrees of longitude per second at the given zoom."""
    if zoom >= config.max_spin_zoom:
        return 0.0
    speed = 360.0 / config.seconds_per_revolution
    if zoom > config.slow_spin_zoom:
        speed *= (config.max_spin_zoom - zoom) / (config.max_spin_zoom - config.slow_spin_zoom)
    return speed


# ── State ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Ease:
    """A camera interpolation in flight."""
    kind: EaseKind
    from_center: LngLat
    from_zoom: float
    to_center: LngLat
    to_zoom: float
    started_at: float
    duration: float
    easing: str = "linear"

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return max(0.0, min(1.0, (now - self.started_at) / self.duration))

    def camera_at(self, now: float) -> tuple[LngLat, float]:
        t = EASINGS[self.easing](self.progress(now))
        from_lng, from_lat = self.from_center
        to_lng, to_lat = self.to_center
        # Short way around the antimeridian
        d_lng = to_lng - from_lng
        if d_lng > 180.0:
            d_lng -= 360.0
        elif d_lng < -180.0:
            d_lng += 360.0
        center = (
            wrap_longitude(from_lng + d_lng * t),
            from_lat + (to_lat - from_lat) * t,
        )
        zoom = self.from_zoom + (self.to_zoom - self.from_zoom) * t
        return center, zoom


@dataclass(frozen=True)
class NavigationState:
    center: LngLat
    zoom: float
    is_user_interacting: bool = False
    is_animating: bool = False
    spin_enabled: bool = True
    ease: Optional[Ease] = None
    resume_at: Optional[float] = None  # pending end-of-interaction

    @property
    def mode(self) -> NavigationMode:
        if self.is_animating:
            return NavigationMode.ANIMATING
        if not self.spin_enabled or self.is_user_interacting:
            return NavigationMode.PAUSED
        return NavigationMode.IDLE_SPINNING

    @property
    def target(self) -> Optional[LngLat]:
        """Where the current fly-to or reset will land."""
        if self.is_animating and self.ease is not None:
            return self.ease.to_center
        return None


def initial_state(config: NavigationConfig) -> NavigationState:
    return NavigationState(center=config.overview_center, zoom=config.overview_zoom)


# ── Events ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SpinTick:
    at: float


@dataclass(frozen=True)
class Frame:
    at: float


@dataclass(frozen=True)
class InteractionStart:
    at: float


@dataclass(frozen=True)
class InteractionEnd:
    at: float


@dataclass(frozen=True)
class FlyTo:
    at: float
    center: LngLat
    zoom: Optional[float] = None


@dataclass(frozen=True)
class ResetView:
    at: float


@dataclass(frozen=True)
class ToggleSpin:
    at: float


NavigationEvent = Union[SpinTick, Frame, InteractionStart, InteractionEnd, FlyTo, ResetView, ToggleSpin]

_EVENT_TYPES = (SpinTick, Frame, InteractionStart, InteractionEnd, FlyTo, ResetView, ToggleSpin)


# ── Transition function ───────────────────────────────────────────────

def transition(
    state: NavigationState,
    event: NavigationEvent,
    config: NavigationConfig,
) -> NavigationState:
    """Apply one event. Always brings the camera up to date with event.at first."""
    if not isinstance(event, _EVENT_TYPES):
        raise TypeError(f"Unknown navigation event: {event!r}")

    state = _advance(state, event.at)

    if isinstance(event, Frame):
        return state

    if isinstance(event, SpinTick):
        return _spin(state, event.at, config)

    if isinstance(event, InteractionStart):
        # Grabbing the globe stops whatever was moving it, where it is
        return replace(
            state,
            is_user_interacting=True,
            resume_at=None,
            ease=None,
            is_animating=False,
        )

    if isinstance(event, InteractionEnd):
        if not state.is_user_interacting:
            return state
        return replace(state, resume_at=event.at + config.interaction_debounce)

    if isinstance(event, ToggleSpin):
        enabled = not state.spin_enabled
        ease = state.ease
        if not enabled and ease is not None and ease.kind is EaseKind.SPIN:
            ease = None
        return replace(state, spin_enabled=enabled, ease=ease)

    if isinstance(event, FlyTo):
        zoom = config.fly_zoom if event.zoom is None else event.zoom
        return _start_animation(
            state, EaseKind.FLY, event.center, zoom,
            at=event.at, duration=config.fly_duration, easing="ease_in_out_quad",
        )

    if isinstance(event, ResetView):
        return _start_animation(
            state, EaseKind.RESET, config.overview_center, config.overview_zoom,
            at=event.at, duration=config.reset_duration, easing="linear",
        )

    raise AssertionError(f"Unhandled navigation event: {event!r}")


def _advance(state: NavigationState, now: float) -> NavigationState:
    if state.resume_at is not None and now >= state.resume_at:
        state = replace(state, is_user_interacting=False, resume_at=None)

    ease = state.ease
    if ease is None:
        return state

    if ease.progress(now) < 1.0:
        center, zoom = ease.camera_at(now)
        return replace(state, center=center, zoom=zoom)

    # Landed: snap exactly onto the target
    return replace(
        state,
        center=ease.to_center,
        zoom=ease.to_zoom,
        ease=None,
        is_animating=False,
    )


def _spin(state: NavigationState, at: float, config: NavigationConfig) -> NavigationState:
    if state.mode is not NavigationMode.IDLE_SPINNING:
        return state

    distance = spin_speed(state.zoom, config) * config.spin_interval
    if distance <= 0:
        return state

    # While idle the only possible ease is an unfinished spin window; the new
    # window starts from the current camera and continues past its end point.
    lng, lat = state.ease.to_center if state.ease is not None else state.center
    ease = Ease(
        kind=EaseKind.SPIN,
        from_center=state.center,
        from_zoom=state.zoom,
        to_center=(wrap_longitude(lng - distance), lat),
        to_zoom=state.zoom,
        started_at=at,
        duration=config.spin_window,
        easing="linear",
    )
    return replace(state, ease=ease)


def _start_animation(
    state: NavigationState,
    kind: EaseKind,
    center: LngLat,
    zoom: float,
    *,
    at: float,
    duration: float,
    easing: str,
) -> NavigationState:
    # Starts from the camera as it is right now, replacing any ease in flight
    ease = Ease(
        kind=kind,
        from_center=state.center,
        from_zoom=state.zoom,
        to_center=center,
        to_zoom=zoom,
        started_at=at,
        duration=duration,
        easing=easing,
    )
    return replace(state, ease=ease, is_animating=True)


# ── Controller ────────────────────────────────────────────────────────

StateListener = Callable[[NavigationState], None]


class NavigationController:
    """
    Owns one globe view's camera.

    Commands (fly_to, reset_view, toggle_spin, interaction_start/end) come
    from the orchestrator and the renderer; tick() and advance() come from
    the scheduler.
    """

    def __init__(
        self,
        gazetteer: Optional[Gazetteer] = None,
        config: Optional[NavigationConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gazetteer = gazetteer if gazetteer is not None else get_gazetteer()
        self.config = config or get_settings().navigation
        self._clock = clock
        self._state = initial_state(self.config)
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def mode(self) -> NavigationMode:
        return self._state.mode

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-change listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: NavigationEvent) -> NavigationState:
        previous = self._state
        self._state = transition(previous, event, self.config)
        if self._state != previous:
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    # ── Clock-driven ──

    def tick(self) -> NavigationState:
        return self.dispatch(SpinTick(self._clock()))

    def advance(self) -> NavigationState:
        return self.dispatch(Frame(self._clock()))

    # ── Renderer input ──

    def interaction_start(self) -> NavigationState:
        return self.dispatch(InteractionStart(self._clock()))

    def interaction_end(self) -> NavigationState:
        return self.dispatch(InteractionEnd(self._clock()))

    # ── Commands ──

    def fly_to(self, target: Union[Place, str]) -> bool:
        """
        Animate to a supported city. Unknown names are ignored (logged, not
        raised). A fly-to issued mid-animation retargets immediately.
        """
        name = target.name if isinstance(target, Place) else target
        place = self.gazetteer.lookup(name)
        if place is None:
            logger.warning("flyTo ignored: '%s' is not a supported city", name)
            return False

        if self._state.is_animating:
            logger.debug("Superseding in-flight animation toward %s with %s",
                         self._state.target, place.name)

        self.dispatch(FlyTo(self._clock(), place.center))
        logger.info("Flying to %s (%.4f, %.4f)", place.name, place.longitude, place.latitude)
        return True

    def reset_view(self) -> NavigationState:
        if self._state.is_animating:
            logger.debug("Superseding in-flight animation toward %s with reset",
                         self._state.target)
        logger.info("Resetting view to overview %s", self.config.overview_center)
        return self.dispatch(ResetView(self._clock()))

    def toggle_spin(self) -> bool:
        """Flip auto-rotation. Returns the new spin_enabled value."""
        state = self.dispatch(ToggleSpin(self._clock()))
        logger.info("Globe rotation %s", "enabled" if state.spin_enabled else "paused")
        return state.spin_enabled
