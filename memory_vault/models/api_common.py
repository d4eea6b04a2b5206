# memory_vault/models/api_common.py

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """API models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(BaseModel):
    """Confirmation body returned by delete endpoints."""
    message: str = Field(..., description="Human readable confirmation.")


class ErrorResponse(BaseModel):
    """Fixed-shape error body; never carries internal detail."""
    error: str = Field(..., description="Generic error category.")
