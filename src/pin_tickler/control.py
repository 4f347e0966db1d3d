from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import structlog

log = structlog.get_logger(__name__)

Notifier = Callable[[str], Awaitable[None]]
StateListener = Callable[["ControlState"], None]

STOPPED_MESSAGE = "Stopped."


class Mode(str, Enum):
    PAUSED = "paused"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class ControlState:
    mode: Mode = Mode.PAUSED
    auto_submit_enabled: bool = False
    notified_once: bool = False


class ControlStateMachine:
    """Operator-driven run control with two one-way latches.

    auto_submit_enabled only ever goes False -> True. notified_once gates
    the single user-facing notification of a run and is cleared by reset().
    """

    def __init__(self, notifier: Optional[Notifier] = None, *, start_paused: bool = True) -> None:
        self._notifier = notifier
        self._state = ControlState(mode=Mode.PAUSED if start_paused else Mode.RUNNING)
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ControlState:
        return self._state

    @property
    def mode(self) -> Mode:
        return self._state.mode

    @property
    def auto_submit_enabled(self) -> bool:
        return self._state.auto_submit_enabled

    @property
    def notified_once(self) -> bool:
        return self._state.notified_once

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def enable_auto_submit(self) -> None:
        self._transition(replace(self._state, auto_submit_enabled=True))

    def toggle_pause(self) -> None:
        if self._state.mode == Mode.STOPPED:
            return
        mode = Mode.RUNNING if self._state.mode == Mode.PAUSED else Mode.PAUSED
        self._transition(replace(self._state, mode=mode))

    async def stop(self) -> None:
        if self._state.mode != Mode.STOPPED:
            self._transition(replace(self._state, mode=Mode.STOPPED))
        await self.notify_once(STOPPED_MESSAGE)

    def reset(self) -> None:
        """Back to PAUSED with the notification latch cleared.

        Progress and the auto-submit latch are left untouched.
        """
        self._transition(replace(self._state, mode=Mode.PAUSED, notified_once=False), allow_notify_clear=True)

    async def notify_once(self, message: str) -> bool:
        """Send message unless this run already notified. Returns whether it was sent."""
        if self._state.notified_once:
            log.debug("notification suppressed", message=message)
            return False
        self._transition(replace(self._state, notified_once=True))
        if self._notifier is None:
            log.info("notification", message=message)
            return True
        try:
            await self._notifier(message)
        except Exception as e:
            log.error("notifier failed", message=message, error=str(e))
        return True

    def _transition(self, new: ControlState, *, allow_notify_clear: bool = False) -> None:
        old = self._state
        if old.auto_submit_enabled and not new.auto_submit_enabled:
            raise ValueError("auto_submit_enabled cannot be reverted once enabled")
        if old.notified_once and not new.notified_once and not allow_notify_clear:
            raise ValueError("notified_once can only be cleared by reset()")
        if new == old:
            return
        self._state = new
        log.debug("control state changed", mode=new.mode.value, auto_submit=new.auto_submit_enabled)
        for listener in self._listeners:
            listener(new)
