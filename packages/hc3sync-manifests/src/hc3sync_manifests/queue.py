"""Single-consumer job queue that serializes reconciliation runs."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("hc3sync.manifests.queue")


class ReconciliationQueue:
    """Runs submitted jobs strictly one at a time, in submission order.

    Overlapping triggers (startup racing a file-created event, say) each
    get their own job, but no two read-modify-write cycles on a store
    ever interleave. A failing job resolves its own future with the
    exception and the worker moves on.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[
            tuple[Callable[[], Awaitable[Any]], asyncio.Future[Any]] | None
        ] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.get_running_loop().create_task(
            self._run(), name="hc3sync-reconcile"
        )

    def submit(self, job: Callable[[], Awaitable[Any]]) -> asyncio.Future[Any]:
        """Enqueue *job* and return a future for its result.

        The worker is started on first use.
        """
        self.start()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((job, future))
        return future

    async def join(self) -> None:
        """Wait until every job submitted so far has finished."""
        await self._queue.join()

    async def stop(self) -> None:
        """Finish pending jobs, then shut the worker down."""
        if self._worker is None:
            return
        if not self._worker.done():
            await self._queue.put(None)
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
        self._worker = None

    async def __aenter__(self) -> ReconciliationQueue:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return
                job, future = item
                if future.cancelled():
                    continue
                try:
                    result = await job()
                except Exception as exc:  # noqa: BLE001
                    logger.debug("Queued job failed: %s", exc)
                    if not future.cancelled():
                        future.set_exception(exc)
                else:
                    if not future.cancelled():
                        future.set_result(result)
            finally:
                self._queue.task_done()
