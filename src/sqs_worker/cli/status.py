"""Show the status of a queue.

CLI that prints metrics (e.g. visible and in-flight message counts) for the
configured queue.
"""

import os

import click
import dotenv
from icecream import ic
from pydantic import ValidationError

from sqs_worker.config import build_gateway, get_settings
from sqs_worker.errors import ConfigurationError, GatewayError


@click.command()
@click.option("--queue-url", type=str, required=False, help="The queue URL (queue name for pgmq)")
@click.option("--region", type=str, required=False, help="AWS region of the queue")
@click.option("--endpoint-url", type=str, required=False, help="Alternative SQS endpoint URL")
@click.option("--backend", type=click.Choice(["sqs", "pgmq"]), required=False, help="Queue service")
@click.option("--dsn", type=str, required=False, help="The DSN of the pgmq database")
def main(queue_url: str, region: str, endpoint_url: str, backend: str, dsn: str) -> dict:
    """Print metrics for the configured queue."""
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

    click.echo(f"Queue {gateway.queue_identity} status")
    try:
        metrics = gateway.metrics()
    except GatewayError as e:
        raise click.ClickException(f"Error: {e}") from e
    finally:
        gateway.close()
    ic(metrics)
    return metrics


if __name__ == "__main__":
    main()
