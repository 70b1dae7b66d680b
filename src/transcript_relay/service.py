"""
RelayService - Owns one watch session and its start/stop lifecycle.

The service wires the change detector to the ingestion coordinator and
holds all mutable session state (position table, dedup guard, counters),
so several independent sessions can run in one process.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from .change_detector import ChangeDetector
from .config import RelayConfig
from .coordinator import IngestionCoordinator
from .forwarder import Forwarder, HttpTransport, Transport
from .position_tracker import PositionTracker


class RelayService:
    """
    Relays new transcript messages from a directory tree to a collector.

    Example:
        >>> service = RelayService(RelayConfig(player_id="player-01"))
        >>> await service.start()
        >>> ...
        >>> stats = await service.stop()
    """

    def __init__(
        self,
        config: RelayConfig,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the relay service.

        Args:
            config: Session configuration
            transport: Delivery backend. Defaults to an HttpTransport when the
                config names an endpoint, otherwise dry run.
            clock: Wall clock used for duplicate suppression
        """
        self.config = config
        self._logger = logging.getLogger(__name__)

        if transport is None and config.endpoint:
            transport = HttpTransport(
                config.endpoint,
                api_key=config.api_key,
                timeout=config.request_timeout_seconds,
            )

        self.positions = PositionTracker(config.state_file)
        self.forwarder = Forwarder(
            identity=config.identity,
            transport=transport,
            clock=clock,
            dedup_window=config.dedup_window_seconds,
            verbose=config.verbose,
        )
        self.coordinator = IngestionCoordinator(
            self.positions, self.forwarder, verbose=config.verbose
        )
        self.detector = ChangeDetector(
            config.resolved_root,
            self.coordinator.handle_event,
            poll_interval=config.poll_interval_seconds,
            stability_threshold=config.stability_threshold_seconds,
            stability_poll_interval=config.stability_poll_interval_seconds,
        )
        self._running = False

    async def start(self) -> None:
        """
        Start watching.

        Raises:
            RuntimeError: If the service is already running
        """
        if self._running:
            raise RuntimeError("RelayService is already running")

        self._logger.info(
            f"Starting RelayService (player: {self.config.player_id}, "
            f"source: {self.config.source_type.value})"
        )
        self._logger.debug(f"Configuration: {self.config.to_dict()}")
        self._logger.info(
            f"Resuming with {len(self.positions.get_all_positions())} tracked files "
            f"from {self.config.state_file}"
        )
        self._running = True
        await self.detector.start()

    async def wait_ready(self, timeout: float | None = None) -> None:
        """Wait until the startup enumeration of the watched tree has completed."""
        await asyncio.wait_for(self.detector.ready.wait(), timeout=timeout)

    async def stop(self, timeout: float = 5.0) -> dict[str, int]:
        """
        Stop watching, flush positions and report totals.

        Safe to call more than once.

        Args:
            timeout: Maximum time to wait for the detector task to finish

        Returns:
            Forwarder statistics
        """
        if self._running:
            self._logger.info("Stopping RelayService...")
            self._running = False
            await self.detector.stop(timeout=timeout)
            self.positions.flush()

        stats = self.forwarder.get_stats()
        self._logger.info(f"Total messages sent: {stats['message_count']}")
        return stats

    def is_running(self) -> bool:
        """Check if the service is currently watching."""
        return self._running and self.detector.is_running()
