"""Shared fixtures for transcript-relay tests."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from transcript_relay.forwarder import Forwarder
from transcript_relay.models import NormalizedMessage, Role, SessionIdentity, SourceType
from transcript_relay.position_tracker import PositionTracker


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(player_id="player-01", source_type=SourceType.CLAUDECODE)


@pytest.fixture
def sample_message() -> NormalizedMessage:
    return NormalizedMessage(
        role=Role.USER, content="hello", timestamp="2025-01-15T10:30:00.000Z"
    )


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    """Location of a position file inside a temporary state directory."""
    return tmp_path / "state" / "positions.json"


@pytest.fixture
def position_tracker(state_file: Path) -> PositionTracker:
    return PositionTracker(state_file)


@pytest.fixture
def transport() -> AsyncMock:
    """Transport whose deliver() succeeds."""
    mock = AsyncMock()
    mock.deliver = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def forwarder(identity: SessionIdentity, transport: AsyncMock, fake_clock: FakeClock) -> Forwarder:
    return Forwarder(identity=identity, transport=transport, clock=fake_clock)


@pytest.fixture
def transcript_dir(tmp_path: Path) -> Path:
    """Watched root with one project subdirectory."""
    root = tmp_path / "projects"
    (root / "project-a").mkdir(parents=True)
    return root
