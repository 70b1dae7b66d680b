"""Forwarding of normalized messages to the remote collector.

The Forwarder suppresses back-to-back duplicates within a short window and
makes exactly one delivery attempt per message. Delivery failures are
classified and logged, never raised and never retried.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from .errors import (
    DeliveryError,
    NoResponseError,
    RemoteRejectedError,
    RequestSetupError,
)
from .models import NormalizedMessage, OutboundPayload, SessionIdentity

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds
DEFAULT_DEDUP_WINDOW = 0.5  # seconds
PREVIEW_LENGTH = 50


class Transport(Protocol):
    """Anything that can deliver one JSON payload to the collector."""

    async def deliver(self, payload: dict[str, Any]) -> None:
        """Deliver the payload or raise a DeliveryError subclass."""
        ...


class HttpTransport:
    """POSTs payloads to the collector with aiohttp.

    Example:
        >>> transport = HttpTransport("https://collector.example/ingest", api_key="k")
        >>> await transport.deliver({"playerId": "p1", ...})
    """

    def __init__(self, endpoint: str, api_key: str = "", timeout: float = DEFAULT_TIMEOUT):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def deliver(self, payload: dict[str, Any]) -> None:
        """POST the payload once.

        Raises:
            RemoteRejectedError: The collector answered with a non-2xx status.
            NoResponseError: Timeout or network failure.
            RequestSetupError: The request could not be built.
        """
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise RequestSetupError(f"Payload is not JSON serializable: {e}") from e

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    self.endpoint, data=body, headers=self._headers()
                ) as response:
                    if not 200 <= response.status < 300:
                        error_text = await response.text()
                        raise RemoteRejectedError(response.status, error_text[:200])
        except DeliveryError:
            raise
        except aiohttp.InvalidURL as e:
            raise RequestSetupError(f"Invalid endpoint URL: {e}") from e
        except TimeoutError as e:
            raise NoResponseError(f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise NoResponseError(str(e) or type(e).__name__) from e
        except (ValueError, TypeError) as e:
            raise RequestSetupError(str(e)) from e

    def __repr__(self) -> str:
        return (
            f"HttpTransport(endpoint={self.endpoint}, timeout={self.timeout}s, "
            f"api_key={'set' if self.api_key else 'not set'})"
        )


@dataclass
class DedupGuard:
    """Most recently delivered content and when it was sent."""

    content: str
    sent_at: float


class Forwarder:
    """Sends normalized messages to the collector, one attempt each.

    Attributes:
        identity: Static player/source identity added to every payload.
        transport: Delivery backend; None means dry run (payloads printed).
        sent_count: Number of messages delivered (or printed in dry run).
    """

    def __init__(
        self,
        identity: SessionIdentity,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
        dedup_window: float = DEFAULT_DEDUP_WINDOW,
        verbose: bool = False,
    ):
        self.identity = identity
        self.transport = transport
        self.clock = clock
        self.dedup_window = dedup_window
        self.verbose = verbose
        self.sent_count = 0
        self._last_sent: DedupGuard | None = None

    def _is_duplicate(self, message: NormalizedMessage, now: float) -> bool:
        last = self._last_sent
        return (
            last is not None
            and last.content == message.content
            and now - last.sent_at <= self.dedup_window
        )

    async def send(self, message: NormalizedMessage, source_path: str) -> None:
        """Forward one message.

        Identical content seen within ``dedup_window`` seconds of the last
        successful send is skipped. Errors are logged, never raised.

        Args:
            message: Message to forward.
            source_path: Transcript file the message came from (for logs).
        """
        now = self.clock()
        if self._is_duplicate(message, now):
            logger.debug(f"Skipped duplicate message from {source_path} (within dedup window)")
            return

        payload = OutboundPayload.from_message(self.identity, message)

        if self.transport is None:
            self._print_dry_run(payload)
            self.sent_count += 1
            self._last_sent = DedupGuard(content=message.content, sent_at=now)
            return

        try:
            await self.transport.deliver(payload.to_dict())
        except RemoteRejectedError as e:
            logger.error(f"HTTP {e.status}: {e.body}")
            self._log_failed_message(message)
            return
        except NoResponseError as e:
            logger.error(f"No response from server (timeout or network error): {e}")
            self._log_failed_message(message)
            return
        except RequestSetupError as e:
            logger.error(f"Request setup error: {e}")
            self._log_failed_message(message)
            return
        except Exception as e:
            logger.error(f"Send error: {e}")
            self._log_failed_message(message)
            return

        self.sent_count += 1
        preview = message.content
        if len(preview) > PREVIEW_LENGTH:
            preview = preview[:PREVIEW_LENGTH] + "..."
        logger.info(f"[{self.sent_count}] {message.role.value}: {preview}")

        self._last_sent = DedupGuard(content=message.content, sent_at=now)

    def _print_dry_run(self, payload: OutboundPayload) -> None:
        print("\nWould send to collector:")
        print("-" * 60)
        print(json.dumps(payload.to_dict(), indent=2, ensure_ascii=False))
        print("-" * 60)

    def _log_failed_message(self, message: NormalizedMessage) -> None:
        if not self.verbose:
            return
        logger.error(
            "Failed message",
            extra={
                "source_type": self.identity.source_type.value,
                "role": message.role.value,
                "content": message.content[:100],
                "message_timestamp": message.timestamp,
            },
        )

    def get_stats(self) -> dict[str, int]:
        """Return delivery statistics."""
        return {"message_count": self.sent_count}
