# =============================================
# File: ctxcommerce/routers/dashboard.py
# Purpose: HTML dashboard over the analytics summary and /metrics
# =============================================
from __future__ import annotations
from pathlib import Path
from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ctxcommerce.services import analytics

router = APIRouter()

BASE_DIR = Path(__file__).resolve().parents[1]
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

CHANNELS = ["all", "web", "app", "sns"]
PLACEMENTS = ["all", "article", "shortform", "search"]


@router.get("/dashboard", response_class=HTMLResponse, include_in_schema=False)
def dashboard(
    request: Request,
    range_: str = Query("7d", alias="range"),
    channel: str = "all",
    placement: str = "all",
):
    """
    Server-rendered KPI cards and daily series. The metrics panel fetches
    GET /metrics from the browser and refreshes on an interval.
    """
    summary = analytics.summarize(range_, channel, placement)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "summary": summary,
            "ranges": list(analytics.RANGES),
            "channels": CHANNELS,
            "placements": PLACEMENTS,
            "metrics_endpoint": "/metrics",
            "refresh_interval_ms": 5000,
            "app_name": "Contextual Commerce",
        },
    )
