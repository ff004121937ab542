"""Enqueue a message to a queue.

CLI that sends a JSON message to the configured queue, useful for feeding a
worker by hand during development. With --encoding pickle the parsed JSON is
sent as a base64 pickle, for workers run with --decorator pickle.
"""

import json
import os

import click
import dotenv
from pydantic import ValidationError

from sqs_worker.config import build_gateway, get_settings
from sqs_worker.errors import ConfigurationError, GatewayError
from sqs_worker.handlers.decode_pickle import encode_pickle


@click.command()
@click.option("--message", type=str, required=True, help="The message to enqueue (JSON)")
@click.option(
    "--attribute",
    "attributes",
    type=str,
    multiple=True,
    help="A message attribute as name=value, can be used multiple times",
)
@click.option("--queue-url", type=str, required=False, help="The queue URL (queue name for pgmq)")
@click.option("--region", type=str, required=False, help="AWS region of the queue")
@click.option("--endpoint-url", type=str, required=False, help="Alternative SQS endpoint URL")
@click.option("--backend", type=click.Choice(["sqs", "pgmq"]), required=False, help="Queue service")
@click.option(
    "--encoding",
    type=click.Choice(["json", "pickle"]),
    default="json",
    show_default=True,
    help="How the message body is encoded on the queue",
)
@click.option("--dsn", type=str, required=False, help="The DSN of the pgmq database")
def main(
    message: str,
    attributes: tuple[str, ...],
    encoding: str,
    queue_url: str,
    region: str,
    endpoint_url: str,
    backend: str,
    dsn: str,
) -> None:
    """Enqueue a JSON message to the configured queue."""
    click.echo(f"message: {message}")
    try:
        data = json.loads(message)
    except json.JSONDecodeError as err:
        raise click.ClickException(f"Invalid JSON: {message}") from err

    message_attributes = {}
    for attribute in attributes:
        name, sep, value = attribute.partition("=")
        if not sep or not name:
            raise click.ClickException(f"Invalid attribute: {attribute}, expected name=value")
        message_attributes[name] = value

    body = encode_pickle(data) if encoding == "pickle" else json.dumps(data)

    if os.path.exists(".env"):
        dotenv.load_dotenv()
    try:
        settings = get_settings(
            queue_url=queue_url,
            region=region,
            endpoint_url=endpoint_url,
            backend=backend,
            pgmq_dsn=dsn,
        )
        gateway = build_gateway(settings)
    except (ValidationError, ConfigurationError) as e:
        raise click.ClickException(str(e)) from e

    try:
        message_id = gateway.send(body, message_attributes or None)
        click.echo(f"Message enqueued with ID: {message_id}")
    except GatewayError as e:
        raise click.ClickException(f"Error: {e}") from e
    finally:
        gateway.close()


if __name__ == "__main__":
    """Entry point for the enqueue CLI."""
    main()
