"""
Per-record serialization for the final record update.

Uploads for different videos never wait on each other. Uploads for the
same video queue on one lock while they re-read, re-check and write the
record, so a slow upload can't overwrite a field written in the meantime
from a stale copy.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID


class RecordLocks:
    """Registry of asyncio locks keyed by video id."""

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._waiters: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, video_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(video_id, asyncio.Lock())
        self._waiters[video_id] = self._waiters.get(video_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[video_id] -= 1
            if not self._waiters[video_id]:
                del self._waiters[video_id]
                del self._locks[video_id]

    def __len__(self) -> int:
        return len(self._locks)
