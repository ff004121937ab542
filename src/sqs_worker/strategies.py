"""Acknowledgment strategies: when a message is deleted relative to processing.

ProcessThenDelete (the default) deletes a message only after the handler chain
succeeded; a failed message stays on the queue and is redelivered once its
visibility timeout expires, eventually reaching a dead-letter queue if the
queue has one. Handlers must therefore tolerate reprocessing.

DeleteThenProcess deletes every message as soon as it is received and then
processes it. A failed message is never redelivered (at most once).

Strategies keep no state; the worker passed to fetch_and_process supplies the
gateway, chain, failure callback and logger.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from sqs_worker.envelope import Envelope
from sqs_worker.errors import ConfigurationError, GatewayError, ProcessingError

if TYPE_CHECKING:
    from sqs_worker.worker import Worker


class AckStrategy(ABC):
    """Receive one message and coordinate processing and deletion."""

    @abstractmethod
    def fetch_and_process(self, worker: "Worker") -> Envelope | None:
        """Run one receive/process/acknowledge cycle.

        Returns:
            The envelope that was received, or None if nothing was received.
        """
        pass

    def receive(self, worker: "Worker") -> Envelope | None:
        """Receive one message; a gateway failure counts as an empty receive."""
        try:
            return worker.gateway.receive(worker.wait_time_seconds)
        except GatewayError as e:
            worker.log.error(f"Error receiving from {worker.queue_url}: {e}")
            return None

    def delete(self, worker: "Worker", envelope: Envelope) -> bool:
        """Delete the message; returns False (after logging) if the gateway failed."""
        try:
            worker.gateway.delete(envelope)
        except GatewayError as e:
            worker.log.error(f"Error deleting message {envelope.receipt_handle}: {e}")
            return False
        worker.log.debug(f"Deleted message {envelope.receipt_handle}")
        return True

    def process(self, worker: "Worker", envelope: Envelope) -> bool:
        """Invoke the handler chain; on failure call the worker's failure callback.

        An exception raised by the failure callback is not caught.
        """
        worker.log.info(f"Processing message {envelope.receipt_handle}")
        try:
            worker.chain.invoke(envelope)
        except ProcessingError as e:
            worker.log.error(f"Exception caught: {e}")
            worker.on_failure(worker, envelope)
            return False
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ProcessThenDelete(AckStrategy):
    """Process first; delete only on success so failures are redelivered."""

    def fetch_and_process(self, worker: "Worker") -> Envelope | None:
        envelope = self.receive(worker)
        if envelope is None:
            return None
        if self.process(worker, envelope):
            self.delete(worker, envelope)
        return envelope


class DeleteThenProcess(AckStrategy):
    """Delete first, then process whatever the delete outcome. Failures are lost."""

    def fetch_and_process(self, worker: "Worker") -> Envelope | None:
        envelope = self.receive(worker)
        if envelope is None:
            return None
        self.delete(worker, envelope)
        self.process(worker, envelope)
        return envelope


STRATEGIES = {
    "process_then_delete": ProcessThenDelete,
    "default": ProcessThenDelete,
    "delete_then_process": DeleteThenProcess,
    "delete_always": DeleteThenProcess,
}


def get_strategy(name: str) -> AckStrategy:
    """Return a strategy instance by name.

    Raises:
        ConfigurationError: If the name is unknown.
    """
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ConfigurationError(
            f"Invalid strategy: {name}. Valid strategies are: {', '.join(STRATEGIES)}"
        ) from None
