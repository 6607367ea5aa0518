"""Pydantic request/response models for the HTTP API.

WHY: The endpoint validates the JSON body and documents its error shape
in the OpenAPI schema. Stream events live in server/events.py; these are
only the plain JSON bodies.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Wire names are camelCase (providerCredential); Python names snake_case
- Error bodies are always {"error": "<message>"}
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscriptRequest(BaseModel):
    """Body of POST /api/transcript."""

    url: Optional[str] = Field(
        default=None,
        description="YouTube video URL (watch, youtu.be, or embed form).",
    )
    provider_credential: Optional[str] = Field(
        default=None,
        alias="providerCredential",
        description="Optional Supadata API key; overrides the server-configured key.",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
                    "providerCredential": "sd_...",
                }
            ]
        },
    )


class ErrorResponse(BaseModel):
    """Error body returned before the event stream starts.

    RULES:
    - error is always a human-readable message
    """

    error: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
