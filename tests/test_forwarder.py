"""Tests for the Forwarder and HttpTransport."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from transcript_relay.errors import NoResponseError, RemoteRejectedError, RequestSetupError
from transcript_relay.forwarder import Forwarder, HttpTransport
from transcript_relay.models import NormalizedMessage, Role, SessionIdentity


class TestForwarderDelivery:
    """Tests for payload construction and delivery."""

    @pytest.mark.asyncio
    async def test_delivers_wire_payload(
        self, forwarder: Forwarder, transport: AsyncMock, sample_message: NormalizedMessage
    ) -> None:
        await forwarder.send(sample_message, "/logs/a.jsonl")

        transport.deliver.assert_awaited_once_with(
            {
                "playerId": "player-01",
                "type": "claudecode",
                "role": "user",
                "content": "hello",
                "timestamp": "2025-01-15T10:30:00.000Z",
            }
        )
        assert forwarder.get_stats() == {"message_count": 1}

    @pytest.mark.asyncio
    async def test_success_is_logged_with_preview(
        self, forwarder: Forwarder, caplog: pytest.LogCaptureFixture
    ) -> None:
        message = NormalizedMessage(role=Role.ASSISTANT, content="x" * 80, timestamp="t")
        with caplog.at_level(logging.INFO, logger="transcript_relay.forwarder"):
            await forwarder.send(message, "/logs/a.jsonl")
        assert f"[1] assistant: {'x' * 50}..." in caplog.text


class TestForwarderDedup:
    """Tests for short-window duplicate suppression."""

    @pytest.mark.asyncio
    async def test_identical_content_within_window_sent_once(
        self, forwarder: Forwarder, transport: AsyncMock, sample_message, fake_clock
    ) -> None:
        await forwarder.send(sample_message, "/logs/a.jsonl")
        fake_clock.advance(0.4)
        await forwarder.send(sample_message, "/logs/a.jsonl")

        assert transport.deliver.await_count == 1
        assert forwarder.sent_count == 1

    @pytest.mark.asyncio
    async def test_window_boundary_is_inclusive(
        self, forwarder: Forwarder, transport: AsyncMock, sample_message, fake_clock
    ) -> None:
        await forwarder.send(sample_message, "/logs/a.jsonl")
        fake_clock.advance(0.5)
        await forwarder.send(sample_message, "/logs/a.jsonl")

        assert transport.deliver.await_count == 1

    @pytest.mark.asyncio
    async def test_identical_content_after_window_sent_again(
        self, forwarder: Forwarder, transport: AsyncMock, sample_message, fake_clock
    ) -> None:
        await forwarder.send(sample_message, "/logs/a.jsonl")
        fake_clock.advance(0.6)
        await forwarder.send(sample_message, "/logs/a.jsonl")

        assert transport.deliver.await_count == 2

    @pytest.mark.asyncio
    async def test_different_content_not_suppressed(
        self, forwarder: Forwarder, transport: AsyncMock, fake_clock
    ) -> None:
        await forwarder.send(NormalizedMessage(Role.USER, "a", "t"), "/logs/a.jsonl")
        await forwarder.send(NormalizedMessage(Role.ASSISTANT, "b", "t"), "/logs/a.jsonl")

        assert transport.deliver.await_count == 2

    @pytest.mark.asyncio
    async def test_only_most_recent_content_is_remembered(
        self, forwarder: Forwarder, transport: AsyncMock
    ) -> None:
        await forwarder.send(NormalizedMessage(Role.USER, "a", "t"), "/logs/a.jsonl")
        await forwarder.send(NormalizedMessage(Role.USER, "b", "t"), "/logs/a.jsonl")
        await forwarder.send(NormalizedMessage(Role.USER, "a", "t"), "/logs/a.jsonl")

        assert transport.deliver.await_count == 3

    @pytest.mark.asyncio
    async def test_failed_send_does_not_arm_guard(
        self, forwarder: Forwarder, transport: AsyncMock, sample_message
    ) -> None:
        transport.deliver.side_effect = [NoResponseError("timeout"), None]

        await forwarder.send(sample_message, "/logs/a.jsonl")
        await forwarder.send(sample_message, "/logs/a.jsonl")

        assert transport.deliver.await_count == 2
        assert forwarder.sent_count == 1


class TestForwarderErrors:
    """Delivery failures are logged by class and never raised."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (RemoteRejectedError(401, '{"error":"bad key"}'), 'HTTP 401: {"error":"bad key"}'),
            (NoResponseError("timed out"), "No response from server"),
            (RequestSetupError("bad url"), "Request setup error: bad url"),
            (RuntimeError("boom"), "Send error: boom"),
        ],
    )
    async def test_failure_is_logged_not_raised(
        self,
        forwarder: Forwarder,
        transport: AsyncMock,
        sample_message,
        caplog: pytest.LogCaptureFixture,
        error: Exception,
        expected: str,
    ) -> None:
        transport.deliver.side_effect = error

        with caplog.at_level(logging.ERROR, logger="transcript_relay.forwarder"):
            await forwarder.send(sample_message, "/logs/a.jsonl")

        assert expected in caplog.text
        assert forwarder.sent_count == 0
        transport.deliver.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_verbose_logs_failed_message(
        self, identity: SessionIdentity, fake_clock, sample_message, caplog
    ) -> None:
        transport = AsyncMock()
        transport.deliver = AsyncMock(side_effect=NoResponseError("down"))
        forwarder = Forwarder(identity, transport=transport, clock=fake_clock, verbose=True)

        with caplog.at_level(logging.ERROR, logger="transcript_relay.forwarder"):
            await forwarder.send(sample_message, "/logs/a.jsonl")

        failed = [r for r in caplog.records if r.getMessage() == "Failed message"]
        assert len(failed) == 1
        assert failed[0].content == "hello"


class TestForwarderDryRun:
    """Without a transport, payloads are printed and counted."""

    @pytest.mark.asyncio
    async def test_prints_payload(
        self, identity: SessionIdentity, fake_clock, sample_message, capsys
    ) -> None:
        forwarder = Forwarder(identity, transport=None, clock=fake_clock)

        await forwarder.send(sample_message, "/logs/a.jsonl")

        out = capsys.readouterr().out
        assert "Would send to collector" in out
        body = out[out.index("{") : out.rindex("}") + 1]
        assert json.loads(body)["content"] == "hello"
        assert forwarder.get_stats() == {"message_count": 1}

    @pytest.mark.asyncio
    async def test_dry_run_dedups(self, identity: SessionIdentity, fake_clock, sample_message) -> None:
        forwarder = Forwarder(identity, transport=None, clock=fake_clock)

        await forwarder.send(sample_message, "/logs/a.jsonl")
        await forwarder.send(sample_message, "/logs/a.jsonl")

        assert forwarder.sent_count == 1


def _mock_session(status: int = 200, text: str = "", post_side_effect=None) -> MagicMock:
    """Build a mocked aiohttp.ClientSession class."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)

    post_ctx = MagicMock()
    post_ctx.__aenter__ = AsyncMock(return_value=response)
    post_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    if post_side_effect is not None:
        session.post = MagicMock(side_effect=post_side_effect)
    else:
        session.post = MagicMock(return_value=post_ctx)

    session_ctx = MagicMock()
    session_ctx.__aenter__ = AsyncMock(return_value=session)
    session_ctx.__aexit__ = AsyncMock(return_value=False)

    session_cls = MagicMock(return_value=session_ctx)
    session_cls.session = session
    return session_cls


class TestHttpTransport:
    """Tests for the aiohttp transport with a mocked session."""

    @pytest.mark.asyncio
    async def test_posts_json_with_headers(self) -> None:
        session_cls = _mock_session(status=200)
        transport = HttpTransport("https://collector.example/ingest", api_key="secret")

        with patch("transcript_relay.forwarder.aiohttp.ClientSession", session_cls):
            await transport.deliver({"content": "hi"})

        _, kwargs = session_cls.call_args
        assert kwargs["timeout"].total == 10.0
        args, kwargs = session_cls.session.post.call_args
        assert args == ("https://collector.example/ingest",)
        assert json.loads(kwargs["data"]) == {"content": "hi"}
        assert kwargs["headers"] == {
            "Content-Type": "application/json",
            "x-api-key": "secret",
        }

    @pytest.mark.asyncio
    async def test_api_key_header_omitted_when_unset(self) -> None:
        session_cls = _mock_session(status=201)
        transport = HttpTransport("https://collector.example/ingest")

        with patch("transcript_relay.forwarder.aiohttp.ClientSession", session_cls):
            await transport.deliver({"content": "hi"})

        _, kwargs = session_cls.session.post.call_args
        assert "x-api-key" not in kwargs["headers"]

    @pytest.mark.asyncio
    async def test_error_status_raises_remote_rejected(self) -> None:
        session_cls = _mock_session(status=500, text="internal error")
        transport = HttpTransport("https://collector.example/ingest")

        with patch("transcript_relay.forwarder.aiohttp.ClientSession", session_cls):
            with pytest.raises(RemoteRejectedError) as exc_info:
                await transport.deliver({"content": "hi"})

        assert exc_info.value.status == 500
        assert exc_info.value.body == "internal error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raised", "expected"),
        [
            (TimeoutError(), NoResponseError),
            (aiohttp.ClientConnectionError("refused"), NoResponseError),
            (aiohttp.InvalidURL("not a url"), RequestSetupError),
            (ValueError("bad header"), RequestSetupError),
        ],
    )
    async def test_exceptions_are_classified(self, raised: Exception, expected: type) -> None:
        session_cls = _mock_session(post_side_effect=raised)
        transport = HttpTransport("https://collector.example/ingest")

        with patch("transcript_relay.forwarder.aiohttp.ClientSession", session_cls):
            with pytest.raises(expected):
                await transport.deliver({"content": "hi"})

    @pytest.mark.asyncio
    async def test_unserializable_payload(self) -> None:
        transport = HttpTransport("https://collector.example/ingest")
        with pytest.raises(RequestSetupError):
            await transport.deliver({"content": object()})

    def test_repr_masks_api_key(self) -> None:
        transport = HttpTransport("https://collector.example/ingest", api_key="secret")
        assert "secret" not in repr(transport)
