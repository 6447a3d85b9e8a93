"""Unit tests for the concurrent fan-out helper."""

import asyncio
import pytest

from common.utils.tasks import gather_or_cancel


async def value_after(delay, value):
    await asyncio.sleep(delay)
    return value


async def fail_after(delay):
    await asyncio.sleep(delay)
    raise ValueError("boom")


class TestGatherOrCancel:
    @pytest.mark.asyncio
    async def test_results_in_argument_order(self):
        assert await gather_or_cancel(value_after(0.02, "a"), value_after(0, "b")) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_nothing_to_run(self):
        assert await gather_or_cancel() == []

    @pytest.mark.asyncio
    async def test_failure_cancels_siblings(self):
        finished = []

        async def slow():
            await asyncio.sleep(0.2)
            finished.append("slow")

        with pytest.raises(ValueError):
            await gather_or_cancel(slow(), fail_after(0))

        running = [t for t in asyncio.all_tasks() if t is not asyncio.current_task() and not t.done()]
        assert running == []
        await asyncio.sleep(0.3)
        assert finished == []

    @pytest.mark.asyncio
    async def test_caller_timeout_cancels_children(self):
        finished = []

        async def slow():
            await asyncio.sleep(0.2)
            finished.append("slow")

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(gather_or_cancel(slow(), slow()), timeout=0.01)

        await asyncio.sleep(0.3)
        assert finished == []
