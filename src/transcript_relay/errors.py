"""Exception hierarchy for transcript-relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all transcript-relay errors."""


class ConfigError(RelayError):
    """Raised when the relay configuration is invalid."""


class DeliveryError(RelayError):
    """Base class for failures delivering a payload to the collector."""


class RemoteRejectedError(DeliveryError):
    """The collector answered with a non-2xx status.

    Attributes:
        status: HTTP status code returned by the collector.
        body: Response body text (may be empty).
    """

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")


class NoResponseError(DeliveryError):
    """No response arrived (timeout or network failure)."""


class RequestSetupError(DeliveryError):
    """The request could not be built (bad URL, unserializable payload)."""
