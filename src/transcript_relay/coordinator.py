"""Incremental ingestion of transcript files.

The coordinator turns file events into forwarded messages. Positions are
counted in non-empty lines rather than bytes, which keeps them stable across
line-ending differences and trailing blank lines at the cost of re-reading
the whole file on every change.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .forwarder import Forwarder
from .models import FileEvent, FileEventKind
from .parsing import parse_message
from .position_tracker import PositionTracker

logger = logging.getLogger(__name__)


def count_entries(lines: list[str]) -> int:
    """Count the non-empty lines in a split file."""
    return sum(1 for line in lines if line.strip())


class IngestionCoordinator:
    """Reads new transcript lines and hands their messages to the Forwarder.

    Attributes:
        positions: Per-file consumed-line counts.
        forwarder: Destination for parsed messages.
        verbose: Log per-file progress and offending lines.
    """

    def __init__(
        self,
        positions: PositionTracker,
        forwarder: Forwarder,
        verbose: bool = False,
    ):
        self.positions = positions
        self.forwarder = forwarder
        self.verbose = verbose

    async def handle_event(self, event: FileEvent) -> None:
        """Process one change-detector event to completion."""
        if event.kind == FileEventKind.REMOVED:
            logger.info(f"File deleted: {event.path}")
            self.forget(event.path)
            return

        if event.kind == FileEventKind.ADDED:
            logger.debug(f"New session file: {event.path}")
        else:
            logger.debug(f"File changed: {event.path}")
        await self.process_file(event.path, live=event.live)

    def forget(self, file_path: str) -> None:
        """Drop the recorded position of a deleted file."""
        self.positions.remove_position(file_path)

    async def process_file(self, file_path: str, live: bool) -> int:
        """Forward the entries appended to a file since its recorded position.

        When ``live`` is False (backlog seen during the initial scan) the
        position is fast-forwarded to the end of the file and nothing is
        forwarded.

        Args:
            file_path: Absolute path of the transcript file.
            live: Whether the event arrived after the initial scan.

        Returns:
            Number of non-empty lines handed to the parser in this pass.
        """
        path = Path(file_path)
        if not path.exists():
            return 0

        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Error processing file {file_path}: {e}")
            return 0

        lines = text.split("\n")
        total = count_entries(lines)
        recorded = self.positions.get_position(file_path)
        consumed = min(recorded, total)

        if not live:
            self.positions.update_position(file_path, total)
            logger.debug(f"Skipped existing {total} entries for {file_path}")
            return 0

        logger.debug(f"Total entries: {total}, last processed: {consumed}")

        if total <= consumed:
            if recorded != total:
                self.positions.update_position(file_path, total)
            return 0

        logger.debug(f"Processing {total - consumed} new entries from {file_path}")

        seen = 0
        for line in lines:
            if not line.strip():
                continue
            seen += 1
            if seen <= consumed:
                continue

            try:
                message = parse_message(line)
                if message is not None:
                    await self.forwarder.send(message, file_path)
            except Exception as e:
                logger.error(f"Parse error in {file_path}: {e}")
                if self.verbose:
                    logger.error(f"Problematic line: {line[:200]}")

        self.positions.update_position(file_path, total)
        return total - consumed
