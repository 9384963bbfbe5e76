# ctxcommerce/routers/events.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import Field, ValidationError

from ctxcommerce.models import AnalyticsData, CamelModel, ConsentState, ConsentStatus, EventPayload
from ctxcommerce.services import analytics
from ctxcommerce.services.consent import CONSENT_STORE
from ctxcommerce.services.events import get_event_logger
from ctxcommerce.utils import slog

router = APIRouter(tags=["events"])


# ---------- Schemas ----------

class ConsentUpdate(CamelModel):
    tracking: ConsentStatus


class LogEventRequest(EventPayload):
    session_id: str = Field(..., min_length=1, max_length=128)


class TestEventRequest(CamelModel):
    session_id: Optional[str] = None
    respect_consent: bool = True
    payload: Dict[str, Any] = Field(default_factory=dict)


class EventBatch(CamelModel):
    events: List[Dict[str, Any]]


class AnalyticsSummary(CamelModel):
    range: str
    channel: str
    placement: str
    impressions: int
    clicks: int
    ctr: float
    add_to_cart: int
    estimated_revenue: float
    events: int
    series: List[AnalyticsData]


# ---------- Consent ----------

@router.get("/consent/{session_id}", response_model=ConsentState)
def get_consent(session_id: str) -> ConsentState:
    return CONSENT_STORE.get(session_id)


@router.put("/consent/{session_id}", response_model=ConsentState)
def put_consent(session_id: str, body: ConsentUpdate, request: Request) -> ConsentState:
    state = CONSENT_STORE.set(session_id, body.tracking)
    slog.set_context(request, session_id=session_id, consent=state.tracking)
    return state


# ---------- Event logger ----------

@router.post("/events/log", status_code=202)
def post_log_event(req: LogEventRequest, request: Request):
    """
    Queue an event for the session. Without granted consent nothing is
    queued and {"skipped": true} is returned. UTM parameters on the query
    string are captured as the session's attribution.
    """
    payload = EventPayload(**req.model_dump(exclude={"session_id"}))
    queued = get_event_logger().log(req.session_id, payload, params=request.query_params)
    slog.set_context(request, session_id=req.session_id, tracked=queued is not None, event_name=req.event)
    if queued is None:
        return {"skipped": True, "reason": "consent_not_granted"}
    return {"queued": queued.wire(), "pending": get_event_logger().pending()}


@router.post("/events/flush")
def post_flush() -> Dict[str, Any]:
    return get_event_logger().flush_to_sink()


@router.post("/events/test")
def post_test_event(req: TestEventRequest) -> Dict[str, Any]:
    try:
        return get_event_logger().send_test_event(
            session_id=req.session_id,
            payload=req.payload,
            respect_consent=req.respect_consent,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ---------- Ingest (collector) ----------

@router.post("/events")
def post_events(batch: EventBatch, request: Request) -> Dict[str, int]:
    """Store a batch of already-enriched events ({"events": [...]})."""
    try:
        received = analytics.store_events(batch.events)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    slog.set_context(request, events_received=received)
    return {"received": received}


# ---------- Analytics ----------

@router.get("/analytics", response_model=AnalyticsSummary)
def get_analytics(
    range_: str = Query("7d", alias="range"),
    channel: str = "all",
    placement: str = "all",
) -> AnalyticsSummary:
    """Impressions, clicks, CTR and a daily series for the dashboard."""
    return AnalyticsSummary(**analytics.summarize(range_, channel, placement))
