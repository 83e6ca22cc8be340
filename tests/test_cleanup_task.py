"""Tests for the idle transfer sweeper."""

import asyncio

import pytest

from receiver.cleanup_task import IdleTransferSweeper


@pytest.mark.asyncio
async def test_sweep_once_evicts_idle_transfer(manager, chunk_root):
    """Test a single sweep removes transfers past the idle timeout."""
    idle = await manager.init_transfer("idle.bin", 10, 5)
    fresh = await manager.init_transfer("fresh.bin", 10, 5)
    manager._transfers[idle.transfer_id].last_activity -= 600

    sweeper = IdleTransferSweeper(manager, idle_timeout_seconds=300, interval_seconds=60)
    evicted = await sweeper.sweep_once()

    assert evicted == [idle.transfer_id]
    assert not (chunk_root / idle.transfer_id).exists()
    assert await manager.active_transfer_ids() == [fresh.transfer_id]


@pytest.mark.asyncio
async def test_sweep_once_with_nothing_idle(manager):
    """Test a sweep leaves active transfers alone."""
    metadata = await manager.init_transfer("busy.bin", 10, 5)

    sweeper = IdleTransferSweeper(manager, idle_timeout_seconds=300, interval_seconds=60)

    assert await sweeper.sweep_once() == []
    assert await manager.active_transfer_ids() == [metadata.transfer_id]


@pytest.mark.asyncio
async def test_disabled_sweeper_does_not_start(manager):
    """Test a zero timeout disables the background task."""
    sweeper = IdleTransferSweeper(manager, idle_timeout_seconds=0, interval_seconds=1)

    await sweeper.start()

    assert not sweeper.enabled
    assert sweeper._task is None
    await sweeper.stop()


@pytest.mark.asyncio
async def test_background_loop_evicts(manager):
    """Test the running task sweeps on its interval."""
    metadata = await manager.init_transfer("stale.bin", 10, 5)
    manager._transfers[metadata.transfer_id].last_activity -= 600

    sweeper = IdleTransferSweeper(manager, idle_timeout_seconds=300, interval_seconds=0.01)
    await sweeper.start()
    try:
        for _ in range(100):
            if not await manager.active_transfer_ids():
                break
            await asyncio.sleep(0.01)
    finally:
        await sweeper.stop()

    assert await manager.active_transfer_ids() == []
    assert sweeper._task is None


@pytest.mark.asyncio
async def test_start_twice_keeps_one_task(manager):
    """Test starting an already running sweeper is a no-op."""
    sweeper = IdleTransferSweeper(manager, idle_timeout_seconds=300, interval_seconds=60)

    await sweeper.start()
    task = sweeper._task
    await sweeper.start()

    assert sweeper._task is task
    await sweeper.stop()
    assert task.cancelled() or task.done()
