"""Unit tests for InProcessShopLock"""

import asyncio
import pytest

from src.adapter.services.shop_lock import InProcessShopLock


@pytest.mark.asyncio
class TestInProcessShopLock:
    async def test_same_shop_is_serialized(self):
        lock = InProcessShopLock()
        events = []

        async def critical_section(name):
            async with lock.hold(7):
                events.append(f"{name}-enter")
                await asyncio.sleep(0.01)
                events.append(f"{name}-exit")

        await asyncio.gather(critical_section("a"), critical_section("b"))

        assert events in (
            ["a-enter", "a-exit", "b-enter", "b-exit"],
            ["b-enter", "b-exit", "a-enter", "a-exit"],
        )

    async def test_different_shops_run_concurrently(self):
        lock = InProcessShopLock()
        inside = set()
        overlap = []

        async def critical_section(shop_id):
            async with lock.hold(shop_id):
                inside.add(shop_id)
                await asyncio.sleep(0.01)
                overlap.append(len(inside))
                inside.discard(shop_id)

        await asyncio.gather(critical_section(1), critical_section(2))

        assert max(overlap) == 2

    async def test_registry_is_emptied_after_release(self):
        lock = InProcessShopLock()

        async with lock.hold(1):
            assert len(lock) == 1

        assert len(lock) == 0

    async def test_lock_released_on_error(self):
        lock = InProcessShopLock()

        with pytest.raises(RuntimeError):
            async with lock.hold(1):
                raise RuntimeError("boom")

        async with lock.hold(1):
            pass
        assert len(lock) == 0
