"""Tests for per-chat lanes and cancel tokens."""

from __future__ import annotations

import asyncio

import pytest

from telenav.errors import DispatchCancelled
from telenav.lanes import CancelToken, ChatLanes


class TestOrdering:
    def test_same_chat_runs_in_submission_order(self) -> None:
        async def main() -> list[str]:
            lanes = ChatLanes()
            log: list[str] = []

            def job(name: str, delay: float):
                async def run() -> str:
                    log.append(f"start {name}")
                    await asyncio.sleep(delay)
                    log.append(f"end {name}")
                    return name
                return run

            results = await asyncio.gather(
                lanes.run(1, job("a", 0.03)),
                lanes.run(1, job("b", 0.0)),
                lanes.run(1, job("c", 0.01)),
            )
            assert results == ["a", "b", "c"]
            return log

        log = asyncio.run(main())
        assert log == ["start a", "end a", "start b", "end b", "start c", "end c"]

    def test_different_chats_run_in_parallel(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()
            gate = asyncio.Event()

            async def waiter() -> str:
                await asyncio.wait_for(gate.wait(), timeout=1.0)
                return "released"

            async def opener() -> str:
                gate.set()
                return "opened"

            # chat 1 blocks until chat 2 runs; serial execution would time out
            results = await asyncio.gather(lanes.run(1, waiter), lanes.run(2, opener))
            assert results == ["released", "opened"]

        asyncio.run(main())

    def test_lane_dropped_when_idle(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()

            async def noop() -> None:
                return None

            await lanes.run(5, noop)
            await lanes.join()
            assert lanes.active_chats == []

        asyncio.run(main())


class TestReentrancy:
    def test_nested_same_chat_runs_inline(self) -> None:
        async def main() -> str:
            lanes = ChatLanes()

            async def inner() -> str:
                assert ChatLanes.current() == 1
                return "inner"

            async def outer() -> str:
                return await asyncio.wait_for(lanes.run(1, inner), timeout=1.0)

            return await lanes.run(1, outer)

        assert asyncio.run(main()) == "inner"

    def test_current_outside_lane(self) -> None:
        assert ChatLanes.current() is None


class TestFailures:
    def test_exception_propagates_and_lane_survives(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()

            async def boom() -> None:
                raise RuntimeError("boom")

            async def fine() -> str:
                return "fine"

            first = lanes.run(1, boom)
            second = lanes.run(1, fine)
            results = await asyncio.gather(first, second, return_exceptions=True)
            assert isinstance(results[0], RuntimeError)
            assert results[1] == "fine"

        asyncio.run(main())


class TestCancelToken:
    def test_cancel(self) -> None:
        async def main() -> None:
            token = CancelToken()
            assert not token.cancelled
            token.cancel()
            assert token.cancelled
            await asyncio.wait_for(token.wait(), timeout=0.1)

        asyncio.run(main())

    def test_after(self) -> None:
        async def main() -> None:
            token = CancelToken.after(0.01)
            await asyncio.wait_for(token.wait(), timeout=1.0)
            assert token.cancelled

        asyncio.run(main())

    def test_cancelled_before_start(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()
            ran: list[bool] = []

            async def job() -> None:
                ran.append(True)

            token = CancelToken()
            token.cancel()
            with pytest.raises(DispatchCancelled):
                await lanes.run(1, job, token)
            assert ran == []

        asyncio.run(main())

    def test_cancel_running_job(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()
            finished: list[bool] = []

            async def slow() -> None:
                await asyncio.sleep(10)
                finished.append(True)

            async def after() -> str:
                return "next"

            token = CancelToken.after(0.01)
            with pytest.raises(DispatchCancelled):
                await lanes.run(1, slow, token)
            assert finished == []
            # lane keeps serving the chat
            assert await lanes.run(1, after) == "next"

        asyncio.run(main())

    def test_caller_cancellation_cancels_job(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()
            started = asyncio.Event()
            finished: list[bool] = []

            async def slow() -> None:
                started.set()
                await asyncio.sleep(10)
                finished.append(True)

            caller = asyncio.ensure_future(lanes.run(1, slow))
            await started.wait()
            caller.cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller
            await lanes.join()
            assert finished == []

        asyncio.run(main())


class TestShutdown:
    def test_aclose_fails_pending_jobs(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()
            started = asyncio.Event()

            async def slow() -> None:
                started.set()
                await asyncio.sleep(10)

            async def queued() -> str:
                return "never"

            running = lanes.submit(1, slow)
            pending = lanes.submit(1, queued)
            await started.wait()
            await lanes.aclose()

            for fut in (running, pending):
                with pytest.raises(DispatchCancelled):
                    fut.result()

        asyncio.run(main())


class TestSpawnedTasks:
    def test_task_outliving_its_job_is_queued(self) -> None:
        async def main() -> list[str]:
            lanes = ChatLanes()
            log: list[str] = []
            blocker_running = asyncio.Event()
            spawned: list[asyncio.Future[None]] = []

            async def late_work() -> None:
                log.append("late")

            async def background() -> None:
                await blocker_running.wait()
                await lanes.run(1, late_work)

            async def first() -> None:
                spawned.append(asyncio.ensure_future(background()))

            async def blocker() -> None:
                log.append("blocker start")
                blocker_running.set()
                await asyncio.sleep(0.02)
                log.append("blocker end")

            await lanes.run(1, first)
            await asyncio.gather(lanes.run(1, blocker), spawned[0])
            return log

        assert asyncio.run(main()) == ["blocker start", "blocker end", "late"]

    def test_current_cleared_after_job(self) -> None:
        async def main() -> None:
            lanes = ChatLanes()
            seen: list[int | None] = []
            spawned: list[asyncio.Future[None]] = []

            async def check() -> None:
                await asyncio.sleep(0.01)
                seen.append(ChatLanes.current())

            async def job() -> None:
                seen.append(ChatLanes.current())
                spawned.append(asyncio.ensure_future(check()))

            await lanes.run(3, job)
            await spawned[0]
            assert seen == [3, None]

        asyncio.run(main())
