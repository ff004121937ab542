"""Run a worker that processes messages from a queue.

This module provides a CLI that loads a handler by import path, wraps it in
the requested decorators and runs a worker with the chosen acknowledgment
strategy until the process is terminated. Options fall back to SQS_WORKER_*
environment variables (and a .env file in the working directory).
"""

import importlib
import logging
import os
import sys
from typing import Any

import click
import dotenv
from pydantic import ValidationError

from sqs_worker.config import build_gateway, get_settings
from sqs_worker.errors import ConfigurationError
from sqs_worker.handlers.base import BaseHandler
from sqs_worker.handlers.decode_json import DecodeJson
from sqs_worker.handlers.decode_pickle import DecodePickle
from sqs_worker.handlers.sns import UnwrapSns
from sqs_worker.strategies import STRATEGIES, get_strategy
from sqs_worker.worker import Worker, create_logger

DECORATORS = {
    "json": DecodeJson,
    "pickle": DecodePickle,
    "sns": UnwrapSns,
}

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def load_handler(handler_spec: str, handlers_path: list[str] = []) -> Any:
    """Import and return the handler named by ``module:attribute``.

    Args:
        handler_spec: Import path of the handler, e.g. ``handlers.orders:Handler``.
        handlers_path: Directories to search for the handler module.
    Returns:
        A handler instance or callable; BaseHandler subclasses are instantiated.

    Raises:
        click.ClickException: If the handler path is malformed or cannot be imported.
    """
    for path in handlers_path:
        if os.path.exists(path) and path not in sys.path:
            sys.path.insert(0, path)
    module_name, _, attribute = handler_spec.partition(":")
    if not module_name or not attribute:
        raise click.ClickException(f"Invalid handler {handler_spec}, expected module:attribute")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.ClickException(f"Cannot import handler module {module_name}: {e}") from e
    handler = getattr(module, attribute, None)
    if handler is None:
        raise click.ClickException(f"Handler {attribute} not found in {module_name}")
    if isinstance(handler, type) and issubclass(handler, BaseHandler):
        handler = handler()
    return handler


def get_decorators(names: list[str]) -> list[type]:
    """Map decorator names to decorator classes, keeping their order."""
    return [DECORATORS[name] for name in names]


@click.command()
@click.option(
    "--handler",
    "handler_spec",
    type=str,
    required=True,
    help="Import path of the handler as module:attribute",
)
@click.option(
    "--handlers-path",
    type=str,
    multiple=True,
    help="A directory to import handlers from, can be used multiple times",
)
@click.option(
    "--decorator",
    "decorators",
    type=click.Choice(sorted(DECORATORS)),
    multiple=True,
    help=(
        "Decorator to wrap the handler in, outermost first, can be used multiple times. "
        "pickle expects bodies from encode_pickle or sqs-worker-enqueue --encoding pickle"
    ),
)
@click.option("--queue-url", type=str, required=False, help="The queue URL (queue name for pgmq)")
@click.option("--region", type=str, required=False, help="AWS region of the queue")
@click.option("--endpoint-url", type=str, required=False, help="Alternative SQS endpoint URL")
@click.option("--backend", type=click.Choice(["sqs", "pgmq"]), required=False, help="Queue service")
@click.option("--dsn", type=str, required=False, help="The DSN of the pgmq database")
@click.option(
    "--strategy",
    type=click.Choice(sorted(STRATEGIES)),
    required=False,
    help="When to delete messages: after processing succeeds (default) or always before",
)
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), required=False)
def main(**kwargs: Any) -> None:
    """Process messages from a queue until terminated.

    Each message is received on its own, passed through the decorators and the
    handler, and deleted according to the strategy. With the default strategy
    a failed message stays on the queue and is redelivered after its
    visibility timeout; with delete_then_process it is lost.
    """
    if os.path.exists(".env"):
        dotenv.load_dotenv()
    try:
        settings = get_settings(
            queue_url=kwargs["queue_url"],
            region=kwargs["region"],
            endpoint_url=kwargs["endpoint_url"],
            backend=kwargs["backend"],
            pgmq_dsn=kwargs["dsn"],
            strategy=kwargs["strategy"],
            log_level=kwargs["log_level"],
        )
    except ValidationError as e:
        raise click.ClickException(f"Invalid settings: {e}") from e

    level = settings.log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    handler = load_handler(kwargs["handler_spec"], list(kwargs["handlers_path"]))
    try:
        gateway = build_gateway(settings)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    try:
        worker = Worker(
            gateway=gateway,
            queue_url=gateway.queue_identity,
            region=settings.region,
            log=create_logger(level=level),
            handler=handler,
            decorators=get_decorators(list(kwargs["decorators"])),
            strategy=get_strategy(settings.strategy),
        )
        worker.run()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    finally:
        gateway.close()


if __name__ == "__main__":
    main()
