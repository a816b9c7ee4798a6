"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (dev or prod)")
    database: Literal["connected", "disconnected"] = Field(
        description="Reachability of the database backing users and sessions",
    )
    login_methods: list[str] = Field(
        default_factory=list,
        description="Enabled login methods (local, google, platform)",
    )
