"""Cancellable log streaming shared by both adapters.

A follow stream runs a pump task that reads raw chunks from the backend,
decodes them and hands records to the consumer over a memory object
stream. The backend stream is opened and closed by the pump inside a
single ``async with`` so it is released exactly once, however the stream
ends.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import anyio

from ._logstream import LogStreamDecoder
from ._models import LogRecord

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable
    from contextlib import AbstractAsyncContextManager

    from structlog.typing import FilteringBoundLogger

_BUFFER_SIZE = 256


async def _iterate(records: Iterable[LogRecord]) -> AsyncIterator[LogRecord]:
    for record in records:
        yield record


@asynccontextmanager
async def buffered_records(
    records: Iterable[LogRecord],
) -> AsyncIterator[AsyncIterator[LogRecord]]:
    """Expose an already materialized record list as a log iterator."""
    iterator = _iterate(records)
    try:
        yield iterator
    finally:
        await iterator.aclose()


@asynccontextmanager
async def follow_records(
    open_stream: Callable[[], AbstractAsyncContextManager[AsyncIterator[bytes]]],
    *,
    timestamps: bool = True,
    cancel: anyio.Event | None = None,
    logger: FilteringBoundLogger | None = None,
) -> AsyncIterator[AsyncIterator[LogRecord]]:
    """Follow a backend log stream until it ends or is cancelled.

    Iteration ends without error when ``cancel`` is set, when the backend
    closes the stream, or when the consumer leaves the ``async with`` block.
    A backend error raised before cancellation is re-raised when the block
    exits.

    Args:
        open_stream: Opens the backend stream of raw chunks.
        timestamps: Whether lines carry a timestamp prefix.
        cancel: Event that stops the stream when set.
        logger: Logger for stream lifecycle events.

    Yields:
        An async iterator of decoded records.
    """
    send, receive = anyio.create_memory_object_stream[LogRecord](_BUFFER_SIZE)
    pump_scope = anyio.CancelScope()
    failures: list[Exception] = []

    async def pump() -> None:
        async with send:
            with pump_scope:
                try:
                    async with open_stream() as chunks:
                        decoder = LogStreamDecoder(timestamps=timestamps)
                        async for chunk in chunks:
                            for record in decoder.feed(chunk):
                                await send.send(record)
                        for record in decoder.flush():
                            await send.send(record)
                except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                    # Consumer stopped reading.
                    return
                except Exception as e:
                    if cancel is not None and cancel.is_set():
                        return
                    if logger is not None:
                        logger.warning("log_stream_failed", error=str(e))
                    failures.append(e)

    async def watch(event: anyio.Event) -> None:
        await event.wait()
        pump_scope.cancel()

    async with anyio.create_task_group() as tg:
        tg.start_soon(pump)
        if cancel is not None:
            tg.start_soon(watch, cancel)
        try:
            async with receive:
                yield receive
        finally:
            tg.cancel_scope.cancel()

    if failures:
        raise failures[0]
