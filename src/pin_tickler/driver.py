import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from pin_tickler.control import ControlStateMachine, Mode
from pin_tickler.errors import FieldNotFound, InteractionDispatchFailure
from pin_tickler.interactor import FieldInteractor
from pin_tickler.progress import EXHAUSTED, ProgressStore
from pin_tickler.status_snapshot import AttemptRecord, StatusSnapshot, Termination

log = structlog.get_logger(__name__)

StatusSink = Callable[[StatusSnapshot], Awaitable[None]]

COMPLETED_MESSAGE = "Finished all PINs or attempts."
FIELD_MISSING_MESSAGE = "Target input not found."


class DriverLoop:
    """Consume the keyspace one value per attempt while the control mode allows it.

    Each loop instance counts its own attempts; progress lives in the shared
    ProgressStore. A loop runs at most once; create a new one to restart.
    """

    def __init__(
        self,
        progress: ProgressStore,
        control: ControlStateMachine,
        interactor: FieldInteractor,
        *,
        max_attempts: int,
        interval: float,
        pause_poll: float,
        sink: Optional[StatusSink] = None,
    ) -> None:
        self.progress = progress
        self.control = control
        self.interactor = interactor
        self.max_attempts = max_attempts
        self.interval = interval
        self.pause_poll = pause_poll
        self.sink = sink

        self.attempts = 0
        self.last: Optional[AttemptRecord] = None
        self.termination: Optional[Termination] = None
        self._version = 0
        self._task: Optional[asyncio.Task[Termination]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "asyncio.Task[Termination]":
        if self._task is not None:
            raise RuntimeError("DriverLoop already started")
        self._task = asyncio.create_task(self.run(), name="driver-loop")
        return self._task

    async def cancel(self) -> None:
        """Cancel the loop task and wait until it has unwound."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        if self.termination is None:
            # cancelled before its first step
            self.termination = Termination.CANCELLED

    async def wait(self) -> Optional[Termination]:
        if self._task is not None:
            try:
                await asyncio.shield(self._task)
            except asyncio.CancelledError:
                if not self._task.cancelled():
                    raise
                return Termination.CANCELLED
        return self.termination

    async def run(self) -> Termination:
        log.info("loop started", cursor=self.progress.state.cursor, remaining=self.progress.peek_remaining())
        try:
            self.termination = await self._loop()
        except asyncio.CancelledError:
            self.termination = Termination.CANCELLED
            log.info("loop cancelled", attempts=self.attempts)
            raise
        finally:
            if self.termination is not None:
                await self._publish()

        log.info("loop terminated", reason=self.termination.value, attempts=self.attempts)
        return self.termination

    async def _loop(self) -> Termination:
        published_mode: Optional[Mode] = None

        while True:
            mode = self.control.mode
            if mode == Mode.STOPPED:
                return Termination.STOPPED
            if self.attempts >= self.max_attempts or self.progress.peek_remaining() == 0:
                break

            if mode == Mode.PAUSED:
                if published_mode != mode:
                    published_mode = mode
                    await self._publish()
                await asyncio.sleep(self.pause_poll)
                continue
            published_mode = mode

            try:
                field = await self.interactor.require_field()
            except FieldNotFound as e:
                log.error("field missing", error=str(e), cursor=self.progress.state.cursor)
                await self.control.notify_once(FIELD_MISSING_MESSAGE)
                return Termination.FIELD_MISSING
            except InteractionDispatchFailure as e:
                # page navigating or reloading; look again next poll
                log.warning("field lookup failed", error=str(e))
                await asyncio.sleep(self.pause_poll)
                continue

            value = self.progress.next()
            if value is EXHAUSTED:
                break

            await self._attempt(field, str(value))
            await asyncio.sleep(self.interval)

        if self.control.mode != Mode.STOPPED:
            await self.control.notify_once(COMPLETED_MESSAGE)
        return Termination.COMPLETED

    async def _attempt(self, field, value: str) -> None:
        self.attempts += 1
        await self.interactor.write_value(field, value)

        enabled = self.control.auto_submit_enabled
        submit_control = await self.interactor.locate_submit_control() if enabled else None
        submitted = await self.interactor.try_submit(field, submit_control, enabled)

        self.last = AttemptRecord(
            attempt=self.attempts,
            value=value,
            submit_requested=enabled,
            submitted=submitted,
        )
        log.info("attempt", attempt=self.attempts, value=value, submitted=self.last.outcome)
        await self._publish()

    def snapshot(self) -> StatusSnapshot:
        self._version += 1
        state = self.progress.state
        return StatusSnapshot(
            version=self._version,
            mode=self.control.mode,
            attempts=self.attempts,
            cursor=state.cursor,
            total=state.total,
            auto_submit=self.control.auto_submit_enabled,
            last=self.last,
            termination=self.termination,
        )

    async def _publish(self) -> None:
        if self.sink is None:
            return
        try:
            await self.sink(self.snapshot())
        except InteractionDispatchFailure as e:
            log.warning("status sink failed", error=str(e))
