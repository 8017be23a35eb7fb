# mscore/progress.py
# Progress events as a stream the caller subscribes to.
#
# The sampling loop only ever publishes; it never waits on a consumer. A full
# (bounded) stream drops the event. Passing no stream disables reporting.

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    INITIALIZING = "initializing"
    SAMPLING = "sampling"
    ANALYZING = "analyzing"
    MATCHING = "matching"


@dataclass(frozen=True)
class ProgressEvent:
    stage: Stage
    progress: float  # 0..100
    message: str = ""


class ProgressStream:
    """
    Single-consumer channel of ProgressEvents.

        stream = ProgressStream()
        task = asyncio.create_task(perform_auto_sync(..., progress=stream))
        async for ev in stream:
            print(ev.stage.value, round(ev.progress), ev.message)
        result = await task
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProgressEvent) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # the close marker must always get through, even on a full queue
        while True:
            try:
                self._queue.put_nowait(self._CLOSED)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
                self.dropped += 1

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item


def emit(
    stream: Optional[ProgressStream],
    stage: Stage,
    progress: float,
    message: str = "",
) -> None:
    """Publish to `stream` if there is one; progress is clamped to [0, 100]."""
    if stream is None:
        return
    pct = min(100.0, max(0.0, float(progress)))
    logger.debug("progress %s %.1f%% %s", stage.value, pct, message)
    stream.publish(ProgressEvent(stage=stage, progress=pct, message=message))


__all__ = ["Stage", "ProgressEvent", "ProgressStream", "emit"]
