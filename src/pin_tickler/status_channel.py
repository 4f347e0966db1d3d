import asyncio
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class StatusChannel(Generic[T]):
    """Latest-wins asyncio channel. Never holds more than one item."""

    def __init__(self) -> None:
        self._q: asyncio.Queue[Optional[T]] = asyncio.Queue(maxsize=1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, item: T) -> None:
        if self._closed:
            return
        self._put_latest(item)

    def close(self) -> None:
        """Close the channel. Pending consumers receive None."""
        if self._closed:
            return
        self._closed = True
        if self._q.empty():
            self._q.put_nowait(None)

    async def get(self) -> Optional[T]:
        """Wait for the newest item. Returns None once closed and drained."""
        if self._closed and self._q.empty():
            return None
        return await self._q.get()

    def _put_latest(self, item: Optional[T]) -> None:
        try:
            self._q.put_nowait(item)
        except asyncio.QueueFull:
            self._q.get_nowait()  # drop stale
            self._q.put_nowait(item)
