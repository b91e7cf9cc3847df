"""Health check schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    service: str | None = None
    version: str | None = None


class ReadyResponse(BaseModel):
    status: str
    database: bool = False
    dependencies: dict[str, bool] = Field(default_factory=dict)
