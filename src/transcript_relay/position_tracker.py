"""Position tracking for incremental transcript reading.

This module persists, per transcript file, how many non-empty lines have
already been consumed. Positions are stored as a flat JSON object mapping
absolute file paths to integers and survive process restarts.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PositionTracker:
    """Manages persistent storage of per-file line positions.

    The table is held in memory and written back to ``state_file`` after
    every mutation. Writes go to a temporary file that is atomically renamed
    over the old one so an interrupted write never corrupts the table.

    Attributes:
        state_file: Path to the JSON file storing all positions.
        _positions: In-memory cache of positions keyed by absolute path.
    """

    def __init__(self, state_file: str | Path):
        """Initialize position tracker.

        Args:
            state_file: JSON file holding the position table. Its parent
                directory is created if needed.
        """
        self.state_file = Path(state_file)
        self._positions: dict[str, int] = {}

        self._load_positions()

    def _load_positions(self) -> None:
        """Load positions from disk into memory.

        A missing file starts an empty table. An unreadable or malformed
        file is logged and also starts an empty table; individual entries
        that are not non-negative integers are dropped.
        """
        if not self.state_file.exists():
            logger.info("Position state file does not exist, starting fresh")
            return

        try:
            with self.state_file.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse position file: {e}, starting fresh")
            self._positions = {}
            return
        except OSError as e:
            logger.error(f"Error loading positions: {e}, starting fresh")
            self._positions = {}
            return

        if not isinstance(data, dict):
            logger.error("Position file does not contain an object, starting fresh")
            self._positions = {}
            return

        for path, value in data.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                logger.warning(f"Dropping invalid position {value!r} for {path}")
                continue
            self._positions[path] = value

        logger.info(f"Loaded positions for {len(self._positions)} files")

    def _save_positions(self) -> None:
        """Save positions to disk via a temporary file and atomic rename."""
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file = self.state_file.with_suffix(".tmp")
            with temp_file.open("w", encoding="utf-8") as f:
                json.dump(self._positions, f, indent=2)
                f.flush()

            temp_file.replace(self.state_file)
            logger.debug(f"Saved {len(self._positions)} positions to disk")

        except OSError as e:
            logger.error(f"Failed to save positions: {e}")

    def get_position(self, file_path: str) -> int:
        """Get the number of non-empty lines already consumed.

        Args:
            file_path: Absolute path of the transcript file.

        Returns:
            The recorded position, or 0 if the file has never been read.
        """
        return self._positions.get(file_path, 0)

    def update_position(self, file_path: str, position: int) -> None:
        """Record a new position for a file and persist the table.

        Args:
            file_path: Absolute path of the transcript file.
            position: Count of non-empty lines consumed.

        Raises:
            ValueError: If position is negative.
        """
        if position < 0:
            raise ValueError(f"position must be non-negative, got {position}")

        self._positions[file_path] = position
        self._save_positions()
        logger.debug(f"Updated position for {file_path} to {position}")

    def remove_position(self, file_path: str) -> None:
        """Forget a file's position (e.g. after it was deleted)."""
        if file_path in self._positions:
            del self._positions[file_path]
            self._save_positions()
            logger.info(f"Removed position for {file_path}")

    def get_all_positions(self) -> dict[str, int]:
        """Return a copy of the full position table."""
        return dict(self._positions)

    def flush(self) -> None:
        """Write the current table to disk."""
        self._save_positions()
