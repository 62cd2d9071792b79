"""Common Pydantic schemas used across the API."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that speaks camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessResponse(BaseModel):
    """Acknowledgement returned by delete endpoints."""

    success: bool = Field(..., description="Whether the operation succeeded")


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(..., description="Service status (healthy/unhealthy)")
    version: str = Field(..., description="Application version")
