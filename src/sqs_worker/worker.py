"""Long-running worker that consumes one queue message at a time.

A worker owns an immutable WorkerConfig, a handler chain built from it and a
queue gateway. run() loops forever, delegating each receive/process/ack cycle
to the configured acknowledgment strategy::

    worker = Worker(
        queue_url="https://sqs.eu-west-1.amazonaws.com/123456789012/jobs",
        region="eu-west-1",
        log=logging.getLogger("jobs"),
        handler=process_job,
        decorators=[DecodeJson],
    )
    worker.run()

A failing message never stops the worker: the chain turns the fault into a
ProcessingError and the strategy hands the envelope to on_failure. The one
exception is on_failure itself raising, which ends run().
"""

import logging
from pprint import pformat
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sqs_worker.chain import HandlerChain, build_chain
from sqs_worker.envelope import Envelope
from sqs_worker.errors import ConfigurationError
from sqs_worker.gateways.base import QueueGateway
from sqs_worker.gateways.sqs import SqsGateway
from sqs_worker.handlers.base import BaseHandler, as_handler
from sqs_worker.strategies import AckStrategy, ProcessThenDelete

# SQS long polling maximum
WAIT_TIME_SECONDS = 20

LOGGER_METHODS = ("debug", "info", "error")


def default_on_failure(worker: "Worker", envelope: Envelope) -> None:
    """Log the failed message's receipt handle and dump it at debug level."""
    worker.log.error(f"Error processing message {envelope.receipt_handle}")
    worker.log.debug(f"Message Dump {pformat(envelope.model_dump())}")


class WorkerConfig(BaseModel):
    """Everything a worker needs, validated once at startup and never mutated."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    queue_url: str = Field(..., min_length=1, description="Queue URL (or name for non-SQS backends)")
    region: str = Field(..., min_length=1, description="AWS region of the queue")
    log: Any = Field(..., description="Logger exposing debug, info and error")
    handler: Any = Field(..., description="Terminal handler, a BaseHandler or a callable")
    decorators: tuple[Any, ...] = Field((), description="Decorator constructors, outermost first")
    on_failure: Callable[..., Any] = Field(default_on_failure, description="Called as on_failure(worker, envelope)")
    strategy: AckStrategy = Field(default_factory=ProcessThenDelete, description="Acknowledgment strategy")

    @field_validator("log")
    @classmethod
    def check_log(cls, value: Any) -> Any:
        missing = [name for name in LOGGER_METHODS if not callable(getattr(value, name, None))]
        if missing:
            raise ValueError(f"logger is missing {', '.join(missing)}")
        return value

    @field_validator("handler")
    @classmethod
    def check_handler(cls, value: Any) -> Any:
        try:
            return as_handler(value)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e

    @field_validator("decorators")
    @classmethod
    def check_decorators(cls, value: tuple[Any, ...]) -> tuple[Any, ...]:
        for factory in value:
            if isinstance(factory, BaseHandler):
                raise ValueError(f"decorator {factory!r} must be a constructor, not a handler instance")
            if not callable(factory):
                raise ValueError(f"decorator {factory!r} is not callable")
        return value


class Worker:
    """Fetch, process and acknowledge messages from a single queue forever."""

    def __init__(self, gateway: QueueGateway | None = None, **config: Any) -> None:
        """Validate config and build the handler chain.

        Args:
            gateway: Queue gateway to use; defaults to an SqsGateway for
                queue_url and region, created on first use.
            **config: WorkerConfig fields.

        Raises:
            ConfigurationError: If a required field is missing or invalid.
        """
        try:
            self.config = WorkerConfig(**config)
        except ValidationError as e:
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
            raise ConfigurationError(f"Invalid worker configuration: {', '.join(fields)}\n{e}") from e
        self.chain: HandlerChain = build_chain(self.config.handler, self.config.decorators)
        self._gateway = gateway

    @property
    def queue_url(self) -> str:
        return self.config.queue_url

    @property
    def region(self) -> str:
        return self.config.region

    @property
    def log(self) -> Any:
        return self.config.log

    @property
    def on_failure(self) -> Callable[..., Any]:
        return self.config.on_failure

    @property
    def strategy(self) -> AckStrategy:
        return self.config.strategy

    @property
    def wait_time_seconds(self) -> int:
        return WAIT_TIME_SECONDS

    @property
    def gateway(self) -> QueueGateway:
        """The queue gateway, an SqsGateway unless one was injected."""
        if self._gateway is None:
            self._gateway = SqsGateway(self.queue_url, self.region)
        return self._gateway

    def fetch_message(self) -> Envelope | None:
        """Run one receive/process/acknowledge cycle."""
        return self.strategy.fetch_and_process(self)

    def run(self) -> None:
        """Process messages until the process is terminated. Never returns."""
        self.log.info(f"Starting worker on {self.queue_url} with {self.strategy!r}")
        while True:
            self.fetch_message()


def create_logger(name: str = "sqs_worker.worker", level: int | str = logging.INFO) -> logging.Logger:
    """Return a standard library logger suitable for Worker(log=...)."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
