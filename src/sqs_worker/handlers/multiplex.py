"""Dispatch-table decorator: route each message to one of several handlers.

The route key is read from the envelope, by default from the ``type`` field
of a decoded payload, so Multiplex normally sits below a decoder::

    chain = build_chain(
        fallback_handler,
        [DecodeJson, partial(Multiplex, routes={"created": on_created, "deleted": on_deleted})],
    )

Messages whose key has no route go to the wrapped (fallback) handler. Without
a fallback they fail with UnroutableMessageError.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable

from sqs_worker.envelope import Envelope
from sqs_worker.errors import UnroutableMessageError
from sqs_worker.handlers.base import BaseHandler, HandlerDecorator, as_handler

logger = logging.getLogger(__name__)

_MISSING = object()


class Multiplex(HandlerDecorator):
    """Invoke exactly the route handler whose key matches the envelope."""

    def __init__(
        self,
        inner: BaseHandler | None,
        routes: Mapping[str, Any],
        key: str | Callable[[Envelope], Any] = "type",
    ) -> None:
        super().__init__(inner)
        self.routes = {name: as_handler(handler) for name, handler in routes.items()}
        self.key = key

    def route_key(self, envelope: Envelope) -> Any:
        """Return the dispatch key for envelope, or None when it has none."""
        if callable(self.key):
            return self.key(envelope)
        payload = envelope.payload
        if isinstance(payload, Mapping):
            return payload.get(self.key)
        value = getattr(payload, self.key, _MISSING)
        return None if value is _MISSING else value

    def handle(self, envelope: Envelope) -> None:
        key = self.route_key(envelope)
        handler = self.routes.get(key) if key is not None else None
        if handler is None:
            if self.inner is None:
                raise UnroutableMessageError(key)
            logger.debug("No route for %r, using fallback handler", key)
            handler = self.inner
        handler.handle(envelope)
