"""Decorator for Python-native binary payloads.

Queue bodies are text, so producers send the pickle base64 encoded (see
encode_pickle). Unpickling runs arbitrary code: only consume queues whose
producers you trust.
"""

import base64
import pickle
from typing import Any

from sqs_worker.envelope import Envelope
from sqs_worker.handlers.base import HandlerDecorator


def encode_pickle(obj: Any) -> str:
    """Serialize obj into a message body DecodePickle can read."""
    return base64.b64encode(pickle.dumps(obj)).decode("ascii")


class DecodePickle(HandlerDecorator):
    """Unpickle the base64 payload; the next handler sees the Python object."""

    def handle(self, envelope: Envelope) -> None:
        raw = base64.b64decode(envelope.payload, validate=True)
        self.inner.handle(envelope.with_payload(pickle.loads(raw)))
