from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class WebhookResponse(BaseModel):
    message: str


class PushResult(BaseModel):
    id: int
    status: Literal["sent", "failed"]
    error: Optional[str] = None


class CronCheckResponse(BaseModel):
    success: bool
    processed: int
    message: Optional[str] = None
    results: List[PushResult] = Field(default_factory=list)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    llm_enabled: bool
