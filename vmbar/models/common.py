"""Core shared models."""

from pydantic import BaseModel


class VMRestErrorResponse(BaseModel):
    code: int
    message: str


class EmptyResponse(BaseModel):
    """Result of operations the server answers without a body."""
