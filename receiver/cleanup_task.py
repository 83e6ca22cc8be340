"""Background task that evicts abandoned transfers."""

import asyncio
import logging

from receiver.config import TRANSFER_IDLE_TIMEOUT_SECONDS, TRANSFER_SWEEP_INTERVAL_SECONDS
from receiver.transfer_manager import TransferManager

logger = logging.getLogger(__name__)


class IdleTransferSweeper:
    """
    Periodically removes transfers that were initialized but have seen no
    init/chunk activity for longer than the idle timeout, deleting their
    chunk directories.
    """

    def __init__(
        self,
        transfer_manager: TransferManager,
        idle_timeout_seconds: float = TRANSFER_IDLE_TIMEOUT_SECONDS,
        interval_seconds: float = TRANSFER_SWEEP_INTERVAL_SECONDS,
    ):
        """
        Initialize sweeper task.

        Args:
            transfer_manager: Registry to sweep
            idle_timeout_seconds: Inactivity window before eviction (<= 0 disables the sweeper)
            interval_seconds: Time between sweeps
        """
        self.transfer_manager = transfer_manager
        self.idle_timeout_seconds = idle_timeout_seconds
        self.interval_seconds = interval_seconds
        self._running = False
        self._task = None

    @property
    def enabled(self) -> bool:
        return self.idle_timeout_seconds > 0

    async def start(self) -> None:
        """Start the background sweep task."""
        if not self.enabled:
            logger.info("Idle transfer sweeper disabled")
            return

        if self._running:
            logger.warning("Idle transfer sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Started idle transfer sweeper (timeout: {self.idle_timeout_seconds}s, "
            f"interval: {self.interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped idle transfer sweeper")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.sweep_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in idle transfer sweeper: {e}", exc_info=True)

    async def sweep_once(self) -> list:
        """Run one sweep and return the evicted transfer ids."""
        evicted = await self.transfer_manager.evict_idle_transfers(self.idle_timeout_seconds)
        if evicted:
            logger.info(f"Sweep complete: evicted {len(evicted)} idle transfer(s)")
        else:
            logger.debug("Sweep complete: no idle transfers")
        return evicted
