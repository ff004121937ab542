"""PostgreSQL-backed queue gateway using PGMQ.

PGMQ gives SQS-like semantics on top of PostgreSQL: a read hides the message
for a visibility timeout and it reappears unless deleted. Message bodies are
stored as JSON.

Receipt handles have the form ``<msg_id>:<read_ct>`` so each delivery gets its
own handle. PGMQ itself deletes by message id only: the read count in the
handle is not checked on delete, so a handler that outlives its visibility
timeout still deletes the message another consumer may now be processing.
"""

import json
import logging
from typing import Any
from urllib.parse import urlparse

import psycopg
from pgmq import PGMQueue
from pydantic import PostgresDsn

from sqs_worker.envelope import Envelope
from sqs_worker.errors import GatewayError
from sqs_worker.gateways.base import QueueGateway

logger = logging.getLogger(__name__)


def message_id_from_handle(receipt_handle: str) -> int:
    """Return the PGMQ message id encoded in a receipt handle.

    Raises:
        GatewayError: If the handle does not start with an integer id.
    """
    msg_id, _, _ = receipt_handle.partition(":")
    try:
        return int(msg_id)
    except ValueError as e:
        raise GatewayError("delete", f"malformed receipt handle {receipt_handle!r}") from e


class PgmqGateway(QueueGateway):
    """Queue gateway implementation using PGMQ (PostgreSQL Message Queue).

    Connects via a Postgres DSN and delegates to PGMQueue for read, delete,
    send and metrics on a single named queue.
    """

    def __init__(
        self,
        queue_name: str,
        dsn: PostgresDsn | str,
        visibility_timeout: int = 300,
        queue: PGMQueue | None = None,
    ) -> None:
        """Connect to PostgreSQL using the given DSN."""
        self.queue_name = queue_name
        self.visibility_timeout = visibility_timeout
        if queue is None:
            parts = urlparse(str(dsn))
            # noinspection PyTypeChecker
            queue = PGMQueue(
                host=parts.hostname,
                port=parts.port or 5432,
                database=parts.path.lstrip("/"),
                username=parts.username,
                password=parts.password,
            )
        self.queue = queue

    @property
    def queue_identity(self) -> str:
        return self.queue_name

    def receive(self, wait_seconds: int) -> Envelope | None:
        """Poll for one message, hiding it for the visibility timeout."""
        try:
            messages = self.queue.read_with_poll(
                queue=self.queue_name,
                vt=self.visibility_timeout,
                qty=1,
                max_poll_seconds=wait_seconds,
            )
        except psycopg.Error as e:
            raise GatewayError("receive", str(e)) from e
        if not messages:
            return None
        message = messages[0]
        attributes = {"ApproximateReceiveCount": str(message.read_ct)}
        if message.enqueued_at is not None:
            attributes["SentTimestamp"] = message.enqueued_at.isoformat()
        return Envelope(
            body=json.dumps(message.message),
            receipt_handle=f"{message.msg_id}:{message.read_ct}",
            message_id=str(message.msg_id),
            attributes=attributes,
        )

    def delete(self, envelope: Envelope) -> None:
        """Permanently delete the message with the envelope's ID from the queue."""
        try:
            deleted = self.queue.delete(
                queue=self.queue_name,
                msg_id=message_id_from_handle(envelope.receipt_handle),
            )
        except psycopg.Error as e:
            raise GatewayError("delete", str(e)) from e
        if not deleted:
            raise GatewayError("delete", f"message {envelope.receipt_handle} not found")

    def send(self, body: str, message_attributes: dict[str, Any] | None = None) -> str:
        """Store body as JSON in the queue. Returns the message ID.

        PGMQ has no message attributes; they are ignored with a warning.
        """
        if message_attributes:
            logger.warning("PGMQ does not support message attributes, dropping %s", sorted(message_attributes))
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise GatewayError("send", f"body is not valid JSON: {e}") from e
        try:
            message_id = self.queue.send(queue=self.queue_name, message=payload)
        except psycopg.Error as e:
            raise GatewayError("send", str(e)) from e
        return str(message_id)

    def metrics(self) -> dict:
        """Get metrics for the queue (length, message ages, total messages)."""
        try:
            result = self.queue.metrics(self.queue_name)
        except psycopg.Error as e:
            raise GatewayError("metrics", str(e)) from e
        return dict(vars(result))

    def close(self) -> None:
        """Close the connection pool; call when done to avoid shutdown warnings."""
        if hasattr(self.queue, "pool") and self.queue.pool:
            self.queue.pool.close()
