"""Tests for the Debouncer."""

from __future__ import annotations

import asyncio

import pytest

from idebridge.context.debounce import Debouncer


class Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


@pytest.fixture
def counter() -> Counter:
    return Counter()


class TestDebouncer:
    """Tests for trigger/cancel behaviour."""

    @pytest.mark.asyncio
    async def test_fires_once_after_delay(self, counter: Counter) -> None:
        """A single trigger fires the callback once after the delay."""
        debouncer = Debouncer(0.01, counter)
        debouncer.trigger()
        assert debouncer.pending
        assert counter.calls == 0

        await asyncio.sleep(0.05)

        assert counter.calls == 1
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_burst_coalesces(self, counter: Counter) -> None:
        """Triggers within the window collapse into one callback."""
        debouncer = Debouncer(0.02, counter)
        for _ in range(5):
            debouncer.trigger()
            await asyncio.sleep(0.001)

        await asyncio.sleep(0.1)

        assert counter.calls == 1

    @pytest.mark.asyncio
    async def test_trigger_resets_timer(self, counter: Counter) -> None:
        """Each trigger restarts the quiet period."""
        debouncer = Debouncer(0.1, counter)
        debouncer.trigger()
        await asyncio.sleep(0.06)
        debouncer.trigger()
        await asyncio.sleep(0.06)

        # Past the delay since the first trigger, not since the last
        assert counter.calls == 0

        await asyncio.sleep(0.2)
        assert counter.calls == 1

    @pytest.mark.asyncio
    async def test_cancel(self, counter: Counter) -> None:
        """A cancelled trigger never fires."""
        debouncer = Debouncer(0.01, counter)
        debouncer.trigger()
        debouncer.cancel()

        await asyncio.sleep(0.05)

        assert counter.calls == 0
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_separate_bursts_fire_separately(self, counter: Counter) -> None:
        debouncer = Debouncer(0.01, counter)
        debouncer.trigger()
        await asyncio.sleep(0.05)
        debouncer.trigger()
        await asyncio.sleep(0.05)

        assert counter.calls == 2

    def test_trigger_outside_loop_raises(self, counter: Counter) -> None:
        """Without an explicit loop, trigger needs a running one."""
        debouncer = Debouncer(0.01, counter)
        with pytest.raises(RuntimeError):
            debouncer.trigger()
