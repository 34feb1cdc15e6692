"""
schemas/common.py

Shared schemas
  1) error envelope: ErrorDetail, ErrorResponse
  2) list paging: MetaInfo, make_meta()
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) error envelope
# =========================================================

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code (e.g. CAPACITY_EXCEEDED, NOT_FOUND)")
    message: str = Field(..., description="Human readable message")


class ErrorResponse(BaseModel):
    """Body returned by every handler in middlewares/error_handler.py"""
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    latency_ms: Optional[int] = Field(default=None, ge=0)
    trace_id: Optional[str] = Field(default=None, description="copied from X-Request-ID when present")

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) paging
# =========================================================

class MetaInfo(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)

    model_config = ConfigDict(extra="ignore")


def make_meta(total: int, page: int, size: int) -> MetaInfo:
    """pages is at least 1 even when total is 0"""
    pages = max(1, ceil(total / max(1, size)))
    return MetaInfo(total=total, page=page, size=size, pages=pages)
