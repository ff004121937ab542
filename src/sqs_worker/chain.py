"""Compose a terminal handler and its decorators into a single handler chain.

Decorators are declared outermost first. They are applied innermost first, so
the declared order is the order in which they run on the way in, and the
reverse order on the way out::

    chain = build_chain(my_handler, [UnwrapSns, DecodeJson])
    # UnwrapSns -> DecodeJson -> my_handler

The chain is the boundary where handler faults are caught: anything raised
below it comes out of invoke as a ProcessingError.
"""

import logging
from typing import Any, Callable, Iterable

from sqs_worker.envelope import Envelope
from sqs_worker.errors import ConfigurationError, ProcessingError
from sqs_worker.handlers.base import BaseHandler, HandlerDecorator, as_handler

logger = logging.getLogger(__name__)

DecoratorFactory = Callable[[BaseHandler], BaseHandler]


class HandlerChain:
    """A composed handler with a fault-isolating invoke boundary."""

    def __init__(self, outermost: BaseHandler) -> None:
        self.outermost = outermost

    @property
    def handlers(self) -> tuple[BaseHandler, ...]:
        """Handlers from the outermost decorator down to the terminal handler."""
        links = []
        handler = self.outermost
        while handler is not None:
            links.append(handler)
            handler = handler.inner if isinstance(handler, HandlerDecorator) else None
        return tuple(links)

    def invoke(self, envelope: Envelope) -> None:
        """Run the envelope through the chain.

        Raises:
            ProcessingError: If any handler in the chain raised.
        """
        try:
            self.outermost.handle(envelope)
        except ProcessingError:
            raise
        except Exception as exc:
            raise ProcessingError(envelope, exc) from exc

    def __repr__(self) -> str:
        return f"HandlerChain({self.outermost!r})"


def build_chain(terminal: Any, decorators: Iterable[DecoratorFactory] = ()) -> HandlerChain:
    """Wrap terminal in each decorator and return the resulting chain.

    Args:
        terminal: The user's handler, a BaseHandler instance or a plain callable.
        decorators: Decorator constructors, outermost first. Each is called
            with the next handler down and must return a BaseHandler.
    Returns:
        The composed HandlerChain.

    Raises:
        ConfigurationError: If terminal is not a handler, a decorator is a
            handler instance rather than its constructor, or a decorator
            constructor does not return a handler.
    """
    handler = as_handler(terminal)
    for factory in reversed(list(decorators)):
        if isinstance(factory, BaseHandler):
            raise ConfigurationError(f"Decorator {factory!r} must be a constructor, not a handler instance")
        wrapped = factory(handler)
        if not isinstance(wrapped, BaseHandler):
            raise ConfigurationError(f"Decorator {factory!r} did not return a handler")
        handler = wrapped
    chain = HandlerChain(handler)
    logger.debug("Built handler chain %r", chain)
    return chain
