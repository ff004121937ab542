"""Abstract base for queue gateways.

A gateway is a thin client bound to one queue. The worker loop only needs
receive and delete; send, metrics and close serve the command line tools.
Implementations (e.g. SqsGateway, PgmqGateway) raise GatewayError for any
service failure and never retry internally.
"""

from abc import ABC, abstractmethod
from typing import Any

from sqs_worker.envelope import Envelope


class QueueGateway(ABC):
    """Abstract base class for queue access.

    receive must ask the service for exactly one message per call, so that a
    failing message never affects another.
    """

    @property
    @abstractmethod
    def queue_identity(self) -> str:
        """The queue URL or name this gateway is bound to."""
        pass

    @abstractmethod
    def receive(self, wait_seconds: int) -> Envelope | None:
        """Wait up to wait_seconds for one message. Returns None if none arrived."""
        pass

    @abstractmethod
    def delete(self, envelope: Envelope) -> None:
        """Delete the delivery identified by the envelope's receipt handle."""
        pass

    @abstractmethod
    def send(self, body: str, message_attributes: dict[str, Any] | None = None) -> str:
        """Append a message to the queue. Returns the message ID."""
        pass

    @abstractmethod
    def metrics(self) -> dict:
        """Return queue depth counters (e.g. visible and in-flight messages)."""
        pass

    def close(self) -> None:
        """Release connections; call when done."""
        return None
