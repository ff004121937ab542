"""Decorator that decodes a JSON payload before handing it down the chain."""

import json

from sqs_worker.envelope import Envelope
from sqs_worker.handlers.base import HandlerDecorator


class DecodeJson(HandlerDecorator):
    """Parse the envelope payload as JSON; the next handler sees the parsed value.

    Invalid JSON raises json.JSONDecodeError, which fails the message.
    """

    def handle(self, envelope: Envelope) -> None:
        data = json.loads(envelope.payload)
        self.inner.handle(envelope.with_payload(data))
