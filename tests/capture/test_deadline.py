"""
Tests for the debounced deadline.
"""

import asyncio

import pytest

from src.capture.deadline import DebouncedDeadline


class TestDebouncedDeadline:
    """Tests for DebouncedDeadline."""

    @pytest.mark.asyncio
    async def test_fires_after_quiet_window(self):
        calls = []
        deadline = DebouncedDeadline(on_expire=lambda: calls.append("fired"))

        deadline.arm(0.05)
        await asyncio.sleep(0.15)

        assert deadline.fired is True
        assert calls == ["fired"]
        assert deadline.armed is False

    @pytest.mark.asyncio
    async def test_rearming_postpones_expiry(self):
        calls = []
        deadline = DebouncedDeadline(on_expire=lambda: calls.append("fired"))

        deadline.arm(0.2)
        for _ in range(4):
            await asyncio.sleep(0.1)
            deadline.arm(0.2)

        assert calls == []
        await asyncio.sleep(0.35)
        assert calls == ["fired"]

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing(self):
        calls = []
        deadline = DebouncedDeadline(on_expire=lambda: calls.append("fired"))

        deadline.arm(0.05)
        deadline.cancel()
        await asyncio.sleep(0.1)

        assert deadline.fired is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_window_tracks_last_arm(self):
        deadline = DebouncedDeadline(on_expire=lambda: None)

        deadline.arm(5.0)
        deadline.arm(0.5)

        assert deadline.window == 0.5
        deadline.cancel()

    @pytest.mark.asyncio
    async def test_arm_after_fire_is_ignored(self):
        calls = []
        deadline = DebouncedDeadline(on_expire=lambda: calls.append("fired"))

        deadline.arm(0.01)
        await asyncio.sleep(0.05)
        deadline.arm(0.01)
        await asyncio.sleep(0.05)

        assert calls == ["fired"]
