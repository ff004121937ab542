"""Message envelope passed through the handler chain.

An envelope is one delivery taken off the queue: the raw body, the receipt
handle needed to delete that delivery, and the metadata the queue attached.
Decorators hand a decoded form of the body down the chain in ``payload``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Envelope(BaseModel):
    """One delivered message plus the token needed to delete it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    body: str = Field(..., description="Message body as delivered by the queue")
    receipt_handle: str = Field(..., description="Per-delivery token required to delete this delivery")
    attributes: dict[str, str] = Field(default_factory=dict, description="Queue-provided metadata")
    message_id: str | None = Field(None, description="Queue-assigned id of the logical message")
    message_attributes: dict[str, Any] = Field(
        default_factory=dict, description="User-defined attributes sent with the message"
    )
    payload: Any = Field(None, description="Logical payload handed down the chain, defaults to body")

    @model_validator(mode="after")
    def default_payload_to_body(self) -> "Envelope":
        if self.payload is None:
            # frozen model, so bypass __setattr__
            object.__setattr__(self, "payload", self.body)
        return self

    @property
    def receive_count(self) -> int:
        """How many times the queue has delivered this message, 1 if unknown."""
        return int(self.attributes.get("ApproximateReceiveCount", 1))

    def with_payload(self, payload: Any) -> "Envelope":
        """Return a copy of this envelope carrying a new payload."""
        return self.model_copy(update={"payload": payload})
