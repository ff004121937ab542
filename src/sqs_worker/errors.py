"""Exceptions raised by the worker, its gateways and its handler chain.

GatewayError covers queue service failures, ProcessingError wraps any fault
from a handler or decorator, and ConfigurationError is raised while building
a worker, before it ever polls.
"""

from typing import Any


class WorkerError(Exception):
    """Base class for all sqs_worker errors."""


class ConfigurationError(WorkerError):
    """Missing or invalid construction parameters."""


class GatewayError(WorkerError):
    """The queue service failed a receive, delete, send or metrics call."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class ProcessingError(WorkerError):
    """A handler in the chain failed to process an envelope.

    The original exception is kept in ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, envelope: Any, cause: BaseException) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.envelope = envelope
        self.cause = cause


class UnroutableMessageError(WorkerError):
    """No dispatch route matched the envelope and there is no fallback."""

    def __init__(self, key: Any) -> None:
        super().__init__(f"No route for key {key!r}")
        self.key = key
