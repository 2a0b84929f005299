"""Per-chat serialized execution lanes.

Every chat id gets its own queue and a single worker task. Jobs for one
chat run strictly one at a time in submission order; jobs for different
chats run concurrently. A lane is dropped as soon as its queue drains,
so idle chats cost nothing.

    lanes = ChatLanes()
    result = await lanes.run(chat_id, lambda: table.dispatch(...))

    # external cancellation
    token = CancelToken.after(10.0)
    await lanes.run(chat_id, job, cancel=token)

A job that calls ``run`` again for its own chat executes inline instead
of queueing behind itself (handlers navigating from inside a dispatch).
Tasks a job spawns count as part of it only while the job runs; once it
has finished they queue like any other caller.

Awaiting ``run`` for another chat from inside a job holds this lane until
the other lane gets to the work. Two chats doing that to each other
deadlock, so cross-chat work from a job goes through ``submit`` without
waiting on the returned future.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextvars import ContextVar, copy_context
from dataclasses import dataclass

from telenav.errors import DispatchCancelled

logger = logging.getLogger(__name__)

@dataclass(slots=True)
class _LaneSlot:
    chat_id: int
    active: bool = True


# job the current task belongs to; inactive once that job has finished
_current_lane: ContextVar[_LaneSlot | None] = ContextVar("telenav_current_lane", default=None)


class CancelToken:
    """Explicit cancellation handle passed into a dispatch.

    The engine imposes no timeout itself; callers wire one up here.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def after(cls, seconds: float) -> CancelToken:
        """Token that cancels itself after ``seconds``. Needs a running loop."""
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(seconds, token.cancel)
        return token

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(slots=True)
class _Job:
    fn: Callable[[], Awaitable[object]]
    future: asyncio.Future[object]
    cancel: CancelToken | None


class ChatLanes:
    """Queue + worker per chat id."""

    def __init__(self) -> None:
        self._queues: dict[int, asyncio.Queue[_Job]] = {}
        self._workers: dict[int, asyncio.Task[None]] = {}

    @staticmethod
    def current() -> int | None:
        """Chat id of the lane job the caller is part of, if that job is still running."""
        slot = _current_lane.get()
        if slot is None or not slot.active:
            return None
        return slot.chat_id

    def submit[T](
        self,
        chat_id: int,
        fn: Callable[[], Awaitable[T]],
        cancel: CancelToken | None = None,
    ) -> asyncio.Future[T]:
        """Enqueue ``fn`` on the chat's lane; returns a future for its result."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        queue = self._queues.get(chat_id)
        if queue is None:
            queue = self._queues[chat_id] = asyncio.Queue()
            self._workers[chat_id] = loop.create_task(
                self._work(chat_id, queue), name=f"telenav-lane-{chat_id}",
            )
        queue.put_nowait(_Job(fn, future, cancel))  # type: ignore[arg-type]
        return future

    async def run[T](
        self,
        chat_id: int,
        fn: Callable[[], Awaitable[T]],
        cancel: CancelToken | None = None,
    ) -> T:
        """Run ``fn`` on the chat's lane and wait for it.

        Raises DispatchCancelled if ``cancel`` fires first.
        """
        if self.current() == chat_id:
            return await fn()
        return await self.submit(chat_id, fn, cancel)

    async def join(self) -> None:
        """Wait until every lane has drained."""
        while self._workers:
            await asyncio.gather(*self._workers.values(), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel all workers; pending jobs fail with DispatchCancelled."""
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    @property
    def active_chats(self) -> list[int]:
        return list(self._queues)

    async def _work(self, chat_id: int, queue: asyncio.Queue[_Job]) -> None:
        try:
            while True:
                try:
                    job = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                await self._run_job(chat_id, job)
        finally:
            # no await between the empty check and removal: a concurrent
            # submit either lands before (and is drained) or creates a new lane
            if self._queues.get(chat_id) is queue:
                del self._queues[chat_id]
                del self._workers[chat_id]
            while not queue.empty():
                job = queue.get_nowait()
                if not job.future.done():
                    job.future.set_exception(DispatchCancelled(chat_id))

    async def _run_job(self, chat_id: int, job: _Job) -> None:
        if job.future.done():
            # caller gave up before the job started
            return
        if job.cancel is not None and job.cancel.cancelled:
            job.future.set_exception(DispatchCancelled(chat_id))
            return

        slot = _LaneSlot(chat_id)
        context = copy_context()
        context.run(_current_lane.set, slot)
        task = context.run(lambda: asyncio.ensure_future(job.fn()))
        try:
            await self._settle(chat_id, job, task)
        finally:
            slot.active = False

    async def _settle(self, chat_id: int, job: _Job, task: asyncio.Future[object]) -> None:
        watched: set[asyncio.Future[object]] = {task, job.future}
        cancel_wait: asyncio.Task[None] | None = None
        if job.cancel is not None:
            cancel_wait = asyncio.ensure_future(job.cancel.wait())
            watched.add(cancel_wait)

        try:
            done, _ = await asyncio.wait(watched, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            if not job.future.done():
                job.future.set_exception(DispatchCancelled(chat_id))
            raise
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()

        if task not in done:
            logger.warning("Cancelling job on lane %s", chat_id)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            if not job.future.done():
                job.future.set_exception(DispatchCancelled(chat_id))
            return

        if job.future.done():
            # caller is gone; result is dropped
            if not task.cancelled():
                task.exception()
            return
        if task.cancelled():
            job.future.set_exception(DispatchCancelled(chat_id))
        elif (exc := task.exception()) is not None:
            job.future.set_exception(exc)
        else:
            job.future.set_result(task.result())


__all__ = (
    "CancelToken",
    "ChatLanes",
)
