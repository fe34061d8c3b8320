"""Bounded channel carrying answer fragments from a producer task to one consumer."""
import asyncio
import logging
from contextlib import suppress
from typing import AsyncIterator, Optional

from config import STREAM_QUEUE_SIZE

logger = logging.getLogger(__name__)

_END = object()


class _Failure:
    """Error marker put on the queue when the producer raises."""

    def __init__(self, error: BaseException):
        self.error = error


class FragmentChannel:
    """
    Relay an async fragment source through a bounded asyncio.Queue.

    A producer task drains the source into the queue and finishes with an end
    sentinel, or with an error marker that is re-raised on the consumer side.
    Iteration order is arrival order. When the consumer stops early the
    producer is cancelled, so no further fragments are requested.
    """

    def __init__(self, source: AsyncIterator[str], maxsize: int = STREAM_QUEUE_SIZE):
        self._source = source
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._producer: Optional[asyncio.Task] = None
        self._closed = False
        self._consumed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[str]:
        return self.stream()

    def stream(self) -> AsyncIterator[str]:
        """
        The consumer side of the channel.

        Closing the returned generator (aclose) stops the producer.
        """
        if self._consumed:
            raise RuntimeError("FragmentChannel can only be consumed once")
        self._consumed = True
        return self._consume()

    async def _produce(self) -> None:
        try:
            async for fragment in self._source:
                await self._queue.put(fragment)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._queue.put(_Failure(e))
        else:
            await self._queue.put(_END)
        finally:
            aclose = getattr(self._source, "aclose", None)
            if aclose is not None:
                with suppress(Exception):
                    await aclose()

    async def _consume(self) -> AsyncIterator[str]:
        self._producer = asyncio.create_task(self._produce())
        try:
            while True:
                item = await self._queue.get()
                if item is _END:
                    break
                if isinstance(item, _Failure):
                    raise item.error
                yield item
        finally:
            self._closed = True
            await self._stop_producer()

    async def _stop_producer(self) -> None:
        if self._producer.done():
            return
        logger.debug("Consumer closed the channel, cancelling producer")
        self._producer.cancel()
        with suppress(asyncio.CancelledError):
            await self._producer
