# =============================================
# File: ctxcommerce/db/models.py
# Purpose: SQLModel tables for ingested analytics events and approved article matches.
# =============================================

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class EventRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event: str = Field(index=True)
    session_id: str = Field(index=True)
    content_id: Optional[str] = None
    product_id: Optional[str] = None
    # all timestamps are tz-aware UTC
    occurred_at: datetime = Field(index=True, sa_type=DateTime(timezone=True))
    received_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    channel: Optional[str] = None
    placement: Optional[str] = None
    # full camelCase event as sent by the client
    payload: str = "{}"

class ApprovedMatch(SQLModel, table=True):
    id: str = Field(primary_key=True)
    article_id: str = Field(index=True)
    product_id: str
    matched_keyword: str
    context_sentence: str = ""
    context_score: float = 0
    reason_label: Optional[str] = None
    saved_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
