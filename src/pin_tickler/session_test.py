import asyncio
import random

import pytest

from pin_tickler.config import RunConfig
from pin_tickler.control import STOPPED_MESSAGE, Mode
from pin_tickler.driver import COMPLETED_MESSAGE
from pin_tickler.session import Session
from pin_tickler.status_channel import StatusChannel
from pin_tickler.status_snapshot import Termination


def make_session(interactor, notes, **overrides) -> Session:
    values = dict(min_value=1, max_value=200, interval_ms=1, settle_ms=0, pause_poll_ms=1)
    values.update(overrides)
    return Session(RunConfig(**values), interactor, notifier=notes, rng=random.Random(5))


class TestSession:
    """Test suite for Session lifecycle"""

    def test_keyspace_created_up_front(self, make_interactor, notes):
        """The progress store is ready before any loop runs"""
        session = make_session(make_interactor(), notes)
        assert session.progress.state.total == 200
        assert session.control.mode == Mode.PAUSED

    def test_reset_after_stop_resumes_from_cursor(self, make_interactor, notes):
        """reset() after stop() continues from the pre-stop cursor"""
        interactor = make_interactor()
        session = make_session(interactor, notes)

        async def scenario():
            await session.start_loop()
            session.toggle_pause()
            await asyncio.sleep(0.03)
            await session.stop()
            assert await session.wait() == Termination.STOPPED
            cursor = session.progress.state.cursor
            assert cursor > 0

            loop = await session.reset()
            assert session.control.mode == Mode.PAUSED
            assert loop.attempts == 0
            session.toggle_pause()
            await asyncio.sleep(0.01)
            await session.stop()
            await session.wait()
            return cursor

        cursor = asyncio.run(scenario())
        history = interactor.field.history
        assert history[cursor:] == [str(v) for v in session.progress.state.keyspace[cursor:len(history)]]
        assert len(history) == len(set(history))
        assert notes.messages == [STOPPED_MESSAGE, STOPPED_MESSAGE]

    def test_reset_keeps_auto_submit(self, make_interactor, notes):
        """The auto-submit latch survives reset()"""
        session = make_session(make_interactor(), notes)

        async def scenario():
            await session.start_loop()
            session.enable_auto_submit()
            await session.reset()
            await session.close()

        asyncio.run(scenario())
        assert session.control.auto_submit_enabled

    def test_start_loop_cancels_previous(self, make_interactor, notes):
        """Only one loop is alive at a time"""
        session = make_session(make_interactor(), notes)

        async def scenario():
            first = await session.start_loop()
            second = await session.start_loop()
            assert not first.running
            assert first.termination == Termination.CANCELLED
            assert second.running
            await session.close()
            assert not second.running

        asyncio.run(scenario())

    def test_wait_follows_reset(self, make_interactor, notes):
        """wait() returns the termination of the loop started by reset()"""
        session = make_session(make_interactor(), notes, max_value=5, start_paused=False)

        async def scenario():
            await session.start_loop()
            waiter = asyncio.create_task(session.wait())
            await session.reset()
            session.toggle_pause()
            return await waiter

        assert asyncio.run(scenario()) == Termination.COMPLETED
        assert notes.messages == [COMPLETED_MESSAGE]

    def test_channel_receives_snapshots(self, make_interactor, notes):
        """Snapshots reach a registered channel"""
        session = make_session(make_interactor(), notes, max_value=3, start_paused=False)
        channel = StatusChannel()
        session.add_channel(channel)

        async def scenario():
            await session.start_loop()
            await session.wait()
            return await channel.get()

        latest = asyncio.run(scenario())
        assert latest.termination == Termination.COMPLETED
        assert latest.cursor == 3

    def test_closed_session_refuses_new_loops(self, make_interactor, notes):
        """start_loop() after close() is an error"""
        session = make_session(make_interactor(), notes)

        async def scenario():
            await session.close()
            await session.start_loop()

        with pytest.raises(RuntimeError, match="closed"):
            asyncio.run(scenario())
