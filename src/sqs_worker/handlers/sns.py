"""Unwrap SNS notifications delivered to an SQS queue.

When an SNS topic fans out to a queue without raw message delivery, the queue
body is a JSON notification document whose ``Message`` field holds what the
publisher sent. UnwrapSns inflates that document into a SnsNotification.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sqs_worker.envelope import Envelope
from sqs_worker.handlers.base import BaseHandler, HandlerDecorator


class SnsNotification(BaseModel):
    """An SNS notification as delivered to a subscribed queue."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(..., alias="Type", description="Notification type, normally 'Notification'")
    message_id: str = Field(..., alias="MessageId", description="SNS message id")
    topic_arn: str = Field(..., alias="TopicArn", description="Topic the message was published to")
    message: str = Field(..., alias="Message", description="Message as published")
    subject: str | None = Field(None, alias="Subject", description="Optional subject")
    timestamp: str | None = Field(None, alias="Timestamp", description="Publish time, ISO 8601")
    signature_version: str | None = Field(None, alias="SignatureVersion")
    signature: str | None = Field(None, alias="Signature")
    signing_cert_url: str | None = Field(None, alias="SigningCertURL")
    unsubscribe_url: str | None = Field(None, alias="UnsubscribeURL")
    message_attributes: dict[str, Any] = Field(default_factory=dict, alias="MessageAttributes")
    data: Any = Field(None, description="Message parsed as JSON when requested")


class UnwrapSns(HandlerDecorator):
    """Parse the payload as an SNS notification; the next handler sees a SnsNotification.

    With decode_message=True the inner Message is parsed as JSON into
    SnsNotification.data as well.
    """

    def __init__(self, inner: BaseHandler | None, decode_message: bool = False) -> None:
        super().__init__(inner)
        self.decode_message = decode_message

    def handle(self, envelope: Envelope) -> None:
        payload = envelope.payload
        document = payload if isinstance(payload, dict) else json.loads(payload)
        if document.get("Type") != "Notification":
            raise ValueError(f"Not an SNS notification: Type={document.get('Type')!r}")
        notification = SnsNotification.model_validate(document)
        if self.decode_message:
            notification = notification.model_copy(update={"data": json.loads(notification.message)})
        self.inner.handle(envelope.with_payload(notification))
