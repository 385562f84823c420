"""Unit tests for StepController."""

import asyncio

from lamportsim.core.step import Checkpoint, StepController


async def park(steps, pid, checkpoint, released):
    await steps.checkpoint(pid, checkpoint, f"P{pid} {checkpoint.value}")
    released.append(pid)


async def settle():
    for _ in range(3):
        await asyncio.sleep(0)


class TestStepController:
    """Tests for the rendezvous gate."""

    def test_disabled_is_noop(self):
        async def scenario():
            steps = StepController(enabled=False)
            released = []
            await asyncio.wait_for(park(steps, 0, Checkpoint.AFTER_REQUEST, released), timeout=1.0)
            return steps, released

        steps, released = asyncio.run(scenario())
        assert released == [0]
        assert steps.pending == ()
        assert steps.advance() is None

    def test_advance_without_waiters(self):
        steps = StepController(enabled=True)
        assert steps.advance() is None
        assert steps.released == 0

    def test_one_advance_releases_one_task(self):
        async def scenario():
            steps = StepController(enabled=True)
            released = []
            tasks = [
                asyncio.create_task(park(steps, 0, Checkpoint.AFTER_REQUEST, released)),
                asyncio.create_task(park(steps, 1, Checkpoint.AFTER_REQUEST, released)),
                asyncio.create_task(park(steps, 2, Checkpoint.BEFORE_EXIT, released)),
            ]
            await settle()
            history = [(steps.pending, list(released))]

            waiter = steps.advance()
            await settle()
            history.append((steps.pending, list(released)))

            steps.advance()
            steps.advance()
            await asyncio.wait_for(asyncio.gather(*tasks), timeout=1.0)
            return waiter, history, released

        waiter, history, released = asyncio.run(scenario())

        assert history[0] == (
            (
                (0, Checkpoint.AFTER_REQUEST),
                (1, Checkpoint.AFTER_REQUEST),
                (2, Checkpoint.BEFORE_EXIT),
            ),
            [],
        )
        assert waiter.pid == 0
        assert waiter.label == "P0 after_request"
        assert history[1] == (
            ((1, Checkpoint.AFTER_REQUEST), (2, Checkpoint.BEFORE_EXIT)),
            [0],
        )
        assert released == [0, 1, 2]

    def test_targeted_advance(self):
        async def scenario():
            steps = StepController(enabled=True)
            released = []
            tasks = [
                asyncio.create_task(park(steps, 0, Checkpoint.AFTER_REQUEST, released)),
                asyncio.create_task(park(steps, 1, Checkpoint.BEFORE_ENTER, released)),
            ]
            await settle()
            by_checkpoint = steps.advance(checkpoint=Checkpoint.BEFORE_ENTER)
            await settle()
            miss = steps.advance(pid=5)
            by_pid = steps.advance(pid=0)
            await asyncio.wait_for(asyncio.gather(*tasks), timeout=1.0)
            return by_checkpoint, miss, by_pid, released

        by_checkpoint, miss, by_pid, released = asyncio.run(scenario())
        assert by_checkpoint.pid == 1
        assert miss is None
        assert by_pid.pid == 0
        assert released == [1, 0]

    def test_wait_for_pending(self):
        async def scenario():
            steps = StepController(enabled=True)
            watcher = asyncio.create_task(steps.wait_for_pending())
            await settle()
            early = watcher.done()

            released = []
            task = asyncio.create_task(park(steps, 3, Checkpoint.BEFORE_ENTER, released))
            await asyncio.wait_for(watcher, timeout=1.0)
            steps.advance()
            await asyncio.wait_for(task, timeout=1.0)
            return early, released

        early, released = asyncio.run(scenario())
        assert early is False
        assert released == [3]
