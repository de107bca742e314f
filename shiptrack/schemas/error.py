"""Standard error response schema."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    detail: str
    processed: Optional[int] = None
    rows_read: Optional[int] = None
    source: Optional[str] = None
