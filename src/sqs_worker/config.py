"""Worker settings loaded from the environment.

Uses pydantic-settings for validation. Every field can be set with an
``SQS_WORKER_`` prefixed environment variable (e.g. SQS_WORKER_QUEUE_URL); the
PGMQ DSN is also read from PGMQ_DSN.
"""

import os
from typing import Literal

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqs_worker.errors import ConfigurationError
from sqs_worker.gateways.base import QueueGateway
from sqs_worker.gateways.pgmq import PgmqGateway
from sqs_worker.gateways.sqs import SqsGateway


class WorkerSettings(BaseSettings):
    """Runtime settings for a worker host (queue, backend, strategy, logging)."""

    model_config = SettingsConfigDict(env_prefix="SQS_WORKER_", extra="ignore")

    queue_url: str | None = Field(None, description="SQS queue URL, or queue name for pgmq")
    region: str = Field("us-east-1", description="AWS region of the queue")
    endpoint_url: str | None = Field(None, description="Alternative SQS endpoint (e.g. LocalStack)")
    backend: Literal["sqs", "pgmq"] = Field("sqs", description="Queue service to consume from")
    pgmq_dsn: PostgresDsn | None = Field(
        default_factory=lambda: os.getenv("PGMQ_DSN") or None,
        description="PostgreSQL DSN for the pgmq backend",
    )
    visibility_timeout: int = Field(300, gt=0, description="pgmq visibility timeout in seconds")
    strategy: str = Field("process_then_delete", description="Acknowledgment strategy name")
    log_level: str = Field("INFO", description="Log level for the worker process")


def get_settings(**overrides) -> WorkerSettings:
    """Return the loaded settings instance; overrides that are not None win over the environment."""
    return WorkerSettings(**{name: value for name, value in overrides.items() if value is not None})


def build_gateway(settings: WorkerSettings) -> QueueGateway:
    """Create the gateway the settings describe.

    Raises:
        ConfigurationError: If the queue or the pgmq DSN is missing.
    """
    if not settings.queue_url:
        raise ConfigurationError("No queue URL provided and SQS_WORKER_QUEUE_URL is not set")
    if settings.backend == "pgmq":
        if not settings.pgmq_dsn:
            raise ConfigurationError("No DSN provided and PGMQ_DSN environment variable is not set")
        return PgmqGateway(
            settings.queue_url,
            dsn=settings.pgmq_dsn,
            visibility_timeout=settings.visibility_timeout,
        )
    return SqsGateway(settings.queue_url, settings.region, endpoint_url=settings.endpoint_url)
