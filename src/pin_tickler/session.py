import asyncio
import random
from typing import List, Optional

import structlog

from pin_tickler.config import RunConfig
from pin_tickler.control import ControlStateMachine, Notifier
from pin_tickler.driver import DriverLoop, StatusSink
from pin_tickler.interactor import FieldInteractor
from pin_tickler.progress import ProgressStore
from pin_tickler.status_channel import StatusChannel
from pin_tickler.status_snapshot import StatusSnapshot, Termination

log = structlog.get_logger(__name__)


class Session:
    """Context owned by the host integration that outlives individual driver loops.

    Holds the progress store and control state for the lifetime of a page
    session. At most one DriverLoop is alive at a time: starting a loop
    always cancels and awaits the previous one first.
    """

    def __init__(
        self,
        config: RunConfig,
        interactor: FieldInteractor,
        *,
        notifier: Optional[Notifier] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.interactor = interactor
        self.progress = ProgressStore(rng)
        self.progress.get_or_create(config.min_value, config.max_value)
        self.control = ControlStateMachine(notifier, start_paused=config.start_paused)
        self.loop: Optional[DriverLoop] = None
        self._sinks: List[StatusSink] = []
        self._closed = False

    def add_sink(self, sink: StatusSink) -> None:
        self._sinks.append(sink)

    def add_channel(self, channel: StatusChannel[StatusSnapshot]) -> None:
        async def publish(snapshot: StatusSnapshot) -> None:
            channel.publish(snapshot)

        self.add_sink(publish)

    async def start_loop(self) -> DriverLoop:
        if self._closed:
            raise RuntimeError("Session is closed")
        if self.loop is not None:
            await self.loop.cancel()

        self.loop = DriverLoop(
            self.progress,
            self.control,
            self.interactor,
            max_attempts=self.config.max_attempts,
            interval=self.config.interval,
            pause_poll=self.config.pause_poll,
            sink=self._publish,
        )
        self.loop.start()
        return self.loop

    # ---- Operator actions ----
    def enable_auto_submit(self) -> None:
        self.control.enable_auto_submit()

    def toggle_pause(self) -> None:
        self.control.toggle_pause()

    async def stop(self) -> None:
        await self.control.stop()

    async def reset(self) -> DriverLoop:
        """Restart the loop from the current cursor with the notification latch cleared."""
        if self.loop is not None:
            await self.loop.cancel()
        self.control.reset()
        log.info("session reset", cursor=self.progress.state.cursor)
        return await self.start_loop()

    async def wait(self) -> Optional[Termination]:
        """Wait for the current loop to end. Follows loops started by reset() meanwhile."""
        while self.loop is not None:
            loop = self.loop
            termination = await loop.wait()
            if self._closed:
                return termination
            if termination == Termination.CANCELLED:
                # replaced by reset() or start_loop(), possibly not assigned yet
                await asyncio.sleep(0)
                continue
            if self.loop is loop:
                return termination
        return None

    async def close(self) -> None:
        self._closed = True
        if self.loop is not None:
            await self.loop.cancel()

    async def _publish(self, snapshot: StatusSnapshot) -> None:
        for sink in self._sinks:
            await sink(snapshot)
