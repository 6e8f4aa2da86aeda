from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, StrictInt, StrictStr

from pasteshare.domain.models import MAX_VIEWS_LIMIT


class PasteCreateRequest(BaseModel):
    # Strict types: "5", 5.0 and true are rejected rather than coerced.
    content: Optional[StrictStr] = Field(default=None, description="Paste content")
    ttl_seconds: Optional[StrictInt] = Field(
        default=None,
        ge=1,
        description="Optional lifetime in seconds (>= 1)",
    )
    max_views: Optional[StrictInt] = Field(
        default=None,
        ge=1,
        le=MAX_VIEWS_LIMIT,
        description="Optional maximum allowed views (1 to 2**31 - 1)",
    )


class PasteCreatedResponse(BaseModel):
    id: str
    url: str


class PasteDataResponse(BaseModel):
    content: str
    remaining_views: Optional[int]
    expires_at: Optional[str]


class HealthResponse(BaseModel):
    ok: bool = True
