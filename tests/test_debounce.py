"""
Tests for QueryDebouncer

Verifies:
- A burst of submissions delivers only the last value
- flush() delivers immediately, cancel() discards
"""

import asyncio
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.debounce import QueryDebouncer


DELAY = 0.01


@pytest.fixture
def delivered():
    return []


@pytest.fixture
def debouncer(delivered):
    async def callback(value):
        delivered.append(value)
        return f"searched:{value}"

    return QueryDebouncer(callback, delay_seconds=DELAY)


class TestQueryDebouncer:
    """Latest-value-wins delivery."""

    def test_burst_delivers_last_value_once(self, debouncer, delivered):
        async def scenario():
            for text in ("h", "ho", "hou", "houston"):
                debouncer.submit(text)
                await asyncio.sleep(0)
            await asyncio.sleep(DELAY * 5)

        asyncio.run(scenario())

        assert delivered == ["houston"]
        assert not debouncer.has_pending

    def test_separate_bursts_each_deliver(self, debouncer, delivered):
        async def scenario():
            debouncer.submit("katy")
            await asyncio.sleep(DELAY * 5)
            debouncer.submit("austin")
            await asyncio.sleep(DELAY * 5)

        asyncio.run(scenario())

        assert delivered == ["katy", "austin"]

    def test_flush_delivers_now(self, debouncer, delivered):
        async def scenario():
            debouncer.submit("dallas")
            result = await debouncer.flush()
            await asyncio.sleep(DELAY * 5)
            return result

        result = asyncio.run(scenario())

        assert result == "searched:dallas"
        assert delivered == ["dallas"]

    def test_flush_with_nothing_pending(self, debouncer, delivered):
        assert asyncio.run(debouncer.flush()) is None
        assert delivered == []

    def test_cancel_discards(self, debouncer, delivered):
        async def scenario():
            debouncer.submit("plano")
            debouncer.cancel()
            await asyncio.sleep(DELAY * 5)

        asyncio.run(scenario())

        assert delivered == []
        assert not debouncer.has_pending

    def test_negative_delay_rejected(self):
        async def callback(value):
            return value

        with pytest.raises(ValueError):
            QueryDebouncer(callback, delay_seconds=-1)

    def test_submit_requires_running_loop(self, debouncer):
        with pytest.raises(RuntimeError):
            debouncer.submit("waco")
