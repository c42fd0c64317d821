"""
Step synchronization - Drives a diagram through its reveal steps.

StepSyncManager is a small timer-driven state machine:
- next/previous/go_to_step transitions, rejected while an animation runs
- One animation timer and one auto-advance timer, each cancelled before replacement
- Keyboard navigation (arrows, space, Home/End, p to toggle auto-advance)
- Synchronous subscribers notified with an immutable state snapshot

Timers go through a Scheduler so the same manager runs on an asyncio event
loop or on a manually advanced clock. All durations are milliseconds.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Literal, Optional, Protocol, Sequence, Union

from pydantic import BaseModel

from .config import DEFAULT_ANIMATION_DURATION, DEFAULT_AUTO_ADVANCE_DELAY
from .models import StructuredDiagram, WireModel

logger = logging.getLogger(__name__)

Direction = Literal["forward", "backward"]
StateListener = Callable[["StepState"], None]


# --- Scheduling ---

class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay in milliseconds."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """
    Schedules timers on an asyncio event loop.

    The loop is bound at construction: the given one, else the running one.

    Raises:
        RuntimeError: No loop given and none is running
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise RuntimeError(
                    "AsyncioScheduler needs a running event loop; pass loop= "
                    "or a different scheduler (e.g. ManualScheduler)"
                ) from None
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(delay_ms / 1000, callback)


class ManualTimer:
    def __init__(self, due: float, order: int, callback: Callable[[], None]):
        self.due = due
        self.order = order
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual clock for tests and synchronous hosts.

    Nothing fires until advance() is called. Timers due at the same instant
    fire in the order they were scheduled; timers scheduled by a firing
    callback fire in the same advance() if they fall inside the window.
    """

    def __init__(self):
        self.now = 0.0
        self._timers: list[ManualTimer] = []
        self._order = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + max(0.0, delay_ms), next(self._order), callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, ms: float) -> None:
        """Move the clock forward, firing every timer that comes due."""
        target = self.now + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.order))
            self._timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target
        self._timers = [t for t in self._timers if not t.cancelled]


# --- State and configuration ---

@dataclass(frozen=True)
class StepState:
    """Snapshot of a manager; current_step plus the two flags is the whole state."""
    current_step: int = 0
    total_steps: int = 0
    is_animating: bool = False
    is_auto_advancing: bool = False
    direction: Optional[Direction] = None  # of the last transition


@dataclass(frozen=True)
class StepConfig:
    """One navigable step."""
    id: str
    label: str
    animation_duration: Optional[float] = None  # ms, falls back to the manager default
    highlight_elements: Optional[list[str]] = None
    visible_elements: Optional[list[str]] = None
    calculation: Optional[str] = None
    requires_interaction: bool = False  # auto-advance pauses here


class StepSyncOptions(BaseModel):
    default_animation_duration: float = DEFAULT_ANIMATION_DURATION
    auto_advance_delay: float = DEFAULT_AUTO_ADVANCE_DELAY
    enable_keyboard: bool = True
    loop: bool = False


@dataclass
class StepSyncCallbacks:
    on_step_change: Optional[Callable[[int, Direction], None]] = None
    on_animation_start: Optional[Callable[[int], None]] = None
    on_animation_complete: Optional[Callable[[int], None]] = None
    on_complete: Optional[Callable[[], None]] = None
    on_reset: Optional[Callable[[], None]] = None


# --- Manager ---

def _prevent_default(event: Any) -> None:
    prevent_default = getattr(event, "prevent_default", None)
    if callable(prevent_default):
        prevent_default()


class StepSyncManager:
    """
    Coordinates the current step, animation timing and auto-advance.

    Invalid requests (out-of-range index, navigating mid-animation) return
    False; nothing here raises for bad navigation. Timers are scheduled
    before any state change, so a failing scheduler leaves the state as it
    was. Call destroy() when done, or pending timers keep a reference to the
    manager.

    Without an explicit scheduler the manager binds to the running asyncio
    loop, and construction raises RuntimeError when there is none.
    """

    def __init__(
        self,
        steps: Sequence[StepConfig],
        callbacks: Optional[StepSyncCallbacks] = None,
        options: Optional[StepSyncOptions] = None,
        scheduler: Optional[Scheduler] = None
    ):
        self._steps: list[StepConfig] = list(steps)
        self._callbacks = callbacks or StepSyncCallbacks()
        self._options = options or StepSyncOptions()
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()

        self._state = StepState(total_steps=len(self._steps))
        self._animation_timer: Optional[TimerHandle] = None
        self._auto_advance_timer: Optional[TimerHandle] = None
        self._listeners: list[StateListener] = []
        # Set once on_complete has fired for the current arrival at the last step
        self._completed = False

    # --- Queries ---

    def get_state(self) -> StepState:
        return self._state

    def get_current_step_config(self) -> Optional[StepConfig]:
        return self.get_step_config(self._state.current_step)

    def get_step_config(self, index: int) -> Optional[StepConfig]:
        if 0 <= index < len(self._steps):
            return self._steps[index]
        return None

    def can_go_next(self) -> bool:
        state = self._state
        return not state.is_animating and (
            state.current_step < state.total_steps - 1 or self._options.loop
        )

    def can_go_previous(self) -> bool:
        return not self._state.is_animating and self._state.current_step > 0

    def get_progress(self) -> float:
        """Percentage through the steps, 100 when there is at most one step."""
        total = self._state.total_steps
        if total <= 1:
            return 100.0
        return self._state.current_step / (total - 1) * 100

    def get_visible_elements(self) -> list[str]:
        config = self.get_current_step_config()
        return list(config.visible_elements or []) if config else []

    def get_highlighted_elements(self) -> list[str]:
        config = self.get_current_step_config()
        return list(config.highlight_elements or []) if config else []

    # --- Subscriptions ---

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener for state changes.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            listener(state)

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    # --- Transitions ---

    def next(self) -> bool:
        if self._state.is_animating:
            return False

        if self._state.current_step >= self._state.total_steps - 1:
            if self._options.loop:
                return self.go_to_step(0)
            self._fire_complete()
            return False

        return self.go_to_step(self._state.current_step + 1)

    def previous(self) -> bool:
        if self._state.is_animating or self._state.current_step <= 0:
            return False
        return self.go_to_step(self._state.current_step - 1)

    def go_to_step(self, index: int) -> bool:
        """
        Jump to a step and start its animation.

        The animation timer clears is_animating, fires on_animation_complete,
        schedules the next auto-advance if active, and fires on_complete when
        the step is the last one and looping is off.

        Returns:
            False if index is out of range or an animation is running
        """
        if index < 0 or index >= self._state.total_steps:
            return False
        if self._state.is_animating:
            return False

        direction: Direction = "forward" if index > self._state.current_step else "backward"
        config = self._steps[index]
        duration = config.animation_duration
        if duration is None:
            duration = self._options.default_animation_duration

        def finish_animation() -> None:
            self._animation_timer = None
            self._set_state(is_animating=False)
            logger.debug("Step %d animation complete", index)
            if self._callbacks.on_animation_complete:
                self._callbacks.on_animation_complete(index)
            self._notify()

            if self._state.is_auto_advancing and not config.requires_interaction:
                self._schedule_auto_advance()

            if index == self._state.total_steps - 1 and not self._options.loop:
                self._fire_complete()

        timer = self._scheduler.call_later(duration, finish_animation)
        self._cancel(self._animation_timer)
        self._animation_timer = timer

        self._set_state(current_step=index, is_animating=True, direction=direction)
        self._completed = False
        logger.debug("Step %d (%s), animating for %sms", index, direction, duration)

        if self._callbacks.on_step_change:
            self._callbacks.on_step_change(index, direction)
        if self._callbacks.on_animation_start:
            self._callbacks.on_animation_start(index)
        self._notify()
        return True

    def reset(self) -> None:
        """Cancel timers and return to step 0."""
        self.stop_auto_advance()
        self._clear_timers()

        self._state = StepState(total_steps=len(self._steps))
        self._completed = False
        logger.debug("Reset to step 0")

        if self._callbacks.on_reset:
            self._callbacks.on_reset()
        self._notify()

    def _fire_complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        logger.debug("All steps complete")
        if self._callbacks.on_complete:
            self._callbacks.on_complete()

    # --- Auto-advance ---

    def start_auto_advance(self) -> None:
        if self._state.is_auto_advancing:
            return
        self._schedule_auto_advance()
        self._set_state(is_auto_advancing=True)
        self._notify()

    def stop_auto_advance(self) -> None:
        if not self._state.is_auto_advancing:
            return
        self._set_state(is_auto_advancing=False)
        self._cancel(self._auto_advance_timer)
        self._auto_advance_timer = None
        self._notify()

    def toggle_auto_advance(self) -> bool:
        """Flip auto-advance; returns whether it is now on."""
        if self._state.is_auto_advancing:
            self.stop_auto_advance()
        else:
            self.start_auto_advance()
        return self._state.is_auto_advancing

    def _schedule_auto_advance(self) -> None:
        def advance() -> None:
            self._auto_advance_timer = None
            if self._state.is_auto_advancing:
                logger.debug("Auto-advance from step %d", self._state.current_step)
                self.next()

        timer = self._scheduler.call_later(self._options.auto_advance_delay, advance)
        self._cancel(self._auto_advance_timer)
        self._auto_advance_timer = timer

    # --- Keyboard ---

    def handle_key_down(self, event: Union[str, Any]) -> bool:
        """
        Handle a key press.

        Accepts a key name or an event object with a `key` attribute; handled
        events get prevent_default() called when the object has one.

        Returns:
            The navigation result for movement keys, True for p/P, False for
            anything else or when keyboard handling is disabled
        """
        if not self._options.enable_keyboard:
            return False

        key = event if isinstance(event, str) else getattr(event, "key", None)

        if key in ("ArrowRight", "ArrowDown", " "):
            _prevent_default(event)
            return self.next()
        if key in ("ArrowLeft", "ArrowUp"):
            _prevent_default(event)
            return self.previous()
        if key == "Home":
            _prevent_default(event)
            return self.go_to_step(0)
        if key == "End":
            _prevent_default(event)
            return self.go_to_step(self._state.total_steps - 1)
        if key in ("p", "P"):
            _prevent_default(event)
            self.toggle_auto_advance()
            return True
        return False

    # --- Lifecycle ---

    def update_steps(self, steps: Sequence[StepConfig]) -> None:
        """Replace the step list, keeping the current step where possible."""
        self._steps = list(steps)
        current = max(0, min(self._state.current_step, len(self._steps) - 1))
        self._set_state(total_steps=len(self._steps), current_step=current)
        logger.debug("Steps updated: %d steps, now at %d", len(self._steps), current)
        self._notify()

    def destroy(self) -> None:
        """Cancel all timers and drop all listeners."""
        self._clear_timers()
        self._listeners.clear()

    def _clear_timers(self) -> None:
        self._cancel(self._animation_timer)
        self._cancel(self._auto_advance_timer)
        self._animation_timer = None
        self._auto_advance_timer = None

    @staticmethod
    def _cancel(timer: Optional[TimerHandle]) -> None:
        if timer is not None:
            timer.cancel()


# --- Building steps ---

class StepDiagramConfig(WireModel):
    """Per-step settings as a diagram producer emits them."""
    step: Optional[int] = None
    step_label: Optional[str] = None
    visible_forces: Optional[list[str]] = None
    highlight_forces: Optional[list[str]] = None
    show_calculation: Optional[str] = None


def create_steps_from_diagram_config(
    configs: Sequence[Union[StepDiagramConfig, dict]],
    default_duration: float = DEFAULT_ANIMATION_DURATION
) -> list[StepConfig]:
    """Build StepConfigs from producer step settings (dicts or models)."""
    steps = []
    for index, raw in enumerate(configs):
        config = raw if isinstance(raw, StepDiagramConfig) else StepDiagramConfig.model_validate(raw)
        step_number = config.step if config.step is not None else index
        steps.append(StepConfig(
            id=f"step-{step_number}",
            label=config.step_label or f"Step {index + 1}",
            animation_duration=default_duration,
            highlight_elements=config.highlight_forces,
            visible_elements=config.visible_forces,
            calculation=config.show_calculation,
        ))
    return steps


def steps_from_diagram(
    diagram: StructuredDiagram,
    default_duration: float = DEFAULT_ANIMATION_DURATION
) -> list[StepConfig]:
    """Build StepConfigs from a diagram's own steps."""
    steps = []
    for index, step in enumerate(diagram.steps or []):
        duration = default_duration
        if step.animation and step.animation.duration is not None:
            duration = step.animation.duration
        steps.append(StepConfig(
            id=f"step-{step.step_number}",
            label=step.title or f"Step {index + 1}",
            animation_duration=duration,
            highlight_elements=step.highlight_elements,
            visible_elements=list(step.visible_elements),
        ))
    return steps
