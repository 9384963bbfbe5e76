# =============================================
# File: ctxcommerce/routers/metrics.py
# Purpose: Expose in-process counters and latency as JSON
# =============================================
from __future__ import annotations
from fastapi import APIRouter

from ctxcommerce.services.events import get_event_logger
from ctxcommerce.utils.metrics import snapshot

router = APIRouter(tags=["metrics"])

@router.get("/metrics")
def get_metrics():
    """Counters, product source split, latency histogram and event queue state."""
    data = snapshot()
    ev = get_event_logger()
    data["event_queue"] = {"pending": ev.pending(), "sink": ev.sink.name, "running": ev.running}
    return data
