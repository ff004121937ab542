"""Amazon SQS gateway.

Wraps a boto3 SQS client bound to one queue URL. The client is created on
first use so that building a worker never touches the network.
"""

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sqs_worker.envelope import Envelope
from sqs_worker.errors import GatewayError
from sqs_worker.gateways.base import QueueGateway

logger = logging.getLogger(__name__)

METRIC_ATTRIBUTES = [
    "ApproximateNumberOfMessages",
    "ApproximateNumberOfMessagesNotVisible",
    "ApproximateNumberOfMessagesDelayed",
]


def _to_message_attributes(attributes: dict[str, Any]) -> dict[str, dict]:
    """Convert plain values to the SQS MessageAttributes shape; dicts pass through."""
    converted = {}
    for name, value in attributes.items():
        if isinstance(value, dict):
            converted[name] = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            converted[name] = {"DataType": "Number", "StringValue": str(value)}
        else:
            converted[name] = {"DataType": "String", "StringValue": str(value)}
    return converted


class SqsGateway(QueueGateway):
    """Queue gateway backed by Amazon SQS (or an SQS compatible endpoint)."""

    def __init__(
        self,
        queue_url: str,
        region: str,
        endpoint_url: str | None = None,
        client: Any = None,
    ) -> None:
        """Bind to queue_url in region; pass client to reuse an existing boto3 client."""
        self.queue_url = queue_url
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client

    @property
    def client(self):
        """The boto3 SQS client, created on first access."""
        if self._client is None:
            kwargs: dict = {"region_name": self.region}
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            self._client = boto3.client("sqs", **kwargs)
        return self._client

    @property
    def queue_identity(self) -> str:
        return self.queue_url

    def receive(self, wait_seconds: int) -> Envelope | None:
        """Long-poll for a single message."""
        try:
            response = self.client.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=1,
                WaitTimeSeconds=wait_seconds,
                AttributeNames=["All"],
                MessageAttributeNames=["All"],
            )
        except (ClientError, BotoCoreError) as e:
            raise GatewayError("receive", str(e)) from e

        messages = response.get("Messages", [])
        if not messages:
            return None
        message = messages[0]
        return Envelope(
            body=message.get("Body", ""),
            receipt_handle=message["ReceiptHandle"],
            message_id=message.get("MessageId"),
            attributes=message.get("Attributes", {}),
            message_attributes=message.get("MessageAttributes", {}),
        )

    def delete(self, envelope: Envelope) -> None:
        """Delete the delivery; a stale receipt handle fails with GatewayError."""
        try:
            self.client.delete_message(
                QueueUrl=self.queue_url,
                ReceiptHandle=envelope.receipt_handle,
            )
        except (ClientError, BotoCoreError) as e:
            raise GatewayError("delete", str(e)) from e

    def send(self, body: str, message_attributes: dict[str, Any] | None = None) -> str:
        """Send body to the queue. Returns the SQS message ID."""
        params: dict = {"QueueUrl": self.queue_url, "MessageBody": body}
        if message_attributes:
            params["MessageAttributes"] = _to_message_attributes(message_attributes)
        try:
            response = self.client.send_message(**params)
        except (ClientError, BotoCoreError) as e:
            raise GatewayError("send", str(e)) from e
        return response["MessageId"]

    def metrics(self) -> dict:
        """Return the approximate message counts for the queue."""
        try:
            response = self.client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=METRIC_ATTRIBUTES,
            )
        except (ClientError, BotoCoreError) as e:
            raise GatewayError("metrics", str(e)) from e
        attributes = response.get("Attributes", {})
        return {name: int(attributes.get(name, 0)) for name in METRIC_ATTRIBUTES}

    def close(self) -> None:
        """Close the client's HTTP connections if one was created."""
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()
