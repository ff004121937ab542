"""In-process queue gateway for local development and tests.

Mimics the parts of SQS the worker relies on: every receive produces a new
receipt handle, received messages stay in flight until deleted, and
requeue_undeleted plays the part of an expired visibility timeout.
"""

import uuid
from collections import deque
from typing import Any

from sqs_worker.envelope import Envelope
from sqs_worker.errors import GatewayError
from sqs_worker.gateways.base import QueueGateway


class MemoryGateway(QueueGateway):
    """FIFO queue held in memory. Not shared between processes."""

    def __init__(self, queue_name: str = "memory") -> None:
        self.queue_name = queue_name
        self._pending: deque[dict] = deque()
        self._in_flight: dict[str, dict] = {}
        self.receive_calls: list[int] = []
        self.deleted: list[Envelope] = []

    @property
    def queue_identity(self) -> str:
        return self.queue_name

    def send(self, body: str, message_attributes: dict[str, Any] | None = None) -> str:
        message_id = str(uuid.uuid4())
        self._pending.append(
            {
                "message_id": message_id,
                "body": body,
                "message_attributes": dict(message_attributes or {}),
                "receive_count": 0,
            }
        )
        return message_id

    def receive(self, wait_seconds: int) -> Envelope | None:
        """Return the next pending message without blocking, or None."""
        self.receive_calls.append(wait_seconds)
        if not self._pending:
            return None
        record = self._pending.popleft()
        record["receive_count"] += 1
        receipt_handle = f"{record['message_id']}:{uuid.uuid4().hex}"
        self._in_flight[receipt_handle] = record
        return Envelope(
            body=record["body"],
            receipt_handle=receipt_handle,
            message_id=record["message_id"],
            attributes={"ApproximateReceiveCount": str(record["receive_count"])},
            message_attributes=record["message_attributes"],
        )

    def delete(self, envelope: Envelope) -> None:
        if self._in_flight.pop(envelope.receipt_handle, None) is None:
            raise GatewayError("delete", f"receipt handle {envelope.receipt_handle!r} is not valid")
        self.deleted.append(envelope)

    def requeue_undeleted(self) -> int:
        """Make every in-flight message visible again. Returns how many were requeued."""
        count = len(self._in_flight)
        self._pending.extendleft(reversed(list(self._in_flight.values())))
        self._in_flight.clear()
        return count

    def metrics(self) -> dict:
        return {
            "ApproximateNumberOfMessages": len(self._pending),
            "ApproximateNumberOfMessagesNotVisible": len(self._in_flight),
        }
