"""Base handler interface for queue messages.

The terminal handler holds the user's logic: it receives an Envelope and
either returns (success) or raises (failure). Decorators wrap exactly one
inner handler and may act before, after or instead of delegating to it.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from sqs_worker.envelope import Envelope
from sqs_worker.errors import ConfigurationError


class BaseHandler(ABC):
    """Abstract base for message handlers.

    handle is required and performs the actual work (e.g. call an API, update DB).
    Raise on failure; the chain turns the exception into a ProcessingError.
    """

    @abstractmethod
    def handle(self, envelope: Envelope) -> None:
        """Process the envelope. Raise on failure."""
        pass

    def __call__(self, envelope: Envelope) -> None:
        self.handle(envelope)


class FunctionHandler(BaseHandler):
    """Adapt a plain ``func(envelope)`` callable to the handler interface."""

    def __init__(self, func: Callable[[Envelope], Any]) -> None:
        self.func = func

    def handle(self, envelope: Envelope) -> None:
        self.func(envelope)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__name__', self.func)!r})"


class HandlerDecorator(BaseHandler):
    """A handler that wraps the next handler down the chain.

    The default implementation passes the envelope through unchanged.
    Subclasses override handle and call ``self.inner.handle`` zero or more times.
    """

    def __init__(self, inner: BaseHandler | None) -> None:
        self.inner = inner

    def handle(self, envelope: Envelope) -> None:
        self.inner.handle(envelope)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.inner!r})"


def as_handler(obj: Any) -> BaseHandler:
    """Return obj as a BaseHandler, wrapping plain callables.

    Raises:
        ConfigurationError: If obj is neither a handler nor callable.
    """
    if isinstance(obj, BaseHandler):
        return obj
    if isinstance(obj, type) and issubclass(obj, BaseHandler):
        raise ConfigurationError(f"Handler class {obj.__name__} must be instantiated")
    if callable(obj):
        return FunctionHandler(obj)
    raise ConfigurationError(f"Not a handler: {obj!r}")
