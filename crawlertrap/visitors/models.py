"""Visitor log models for crawlertrap."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VisitCategory(str, Enum):
    """Which trap (or plain 404) a logged request hit."""
    FORBIDDEN = "forbidden"
    JAVASCRIPT = "javascript"
    SECRET = "secret"
    NOT_FOUND = "not_found"


class VisitorEvent(BaseModel):
    """One logged hit. Stored on disk with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_address: str = Field(alias="sourceAddress", description="Resolved client address")
    user_agent: str = Field(alias="userAgent", description="Raw User-Agent header (untrusted)")
    observed_at: datetime = Field(alias="observedAt", description="Capture time at the server")
    request_path: str = Field(alias="requestPath", description="Requested URL path (untrusted)")
    category: VisitCategory = Field(description="Trap that triggered the entry")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
