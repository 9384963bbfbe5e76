# ctxcommerce/routers/datalab.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from ctxcommerce.errors import NotConfiguredError, UpstreamError
from ctxcommerce.services import naver
from ctxcommerce.utils import ratelimit, slog

router = APIRouter(prefix="/datalab", tags=["datalab"], dependencies=[Depends(ratelimit.enforce)])


def _forward(request: Request, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
    slog.set_context(request, datalab=kind)
    try:
        client = naver.require_client()
        if kind == "search-trend":
            return client.search_trend(body)
        return client.shopping_insight(body)
    except NotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except UpstreamError as e:
        slog.set_context(request, upstream_status=e.status)
        raise HTTPException(status_code=e.status, detail=e.message)


@router.post("/search-trend")
def post_search_trend(request: Request, body: Optional[Dict[str, Any]] = Body(None)) -> Dict[str, Any]:
    """Naver DataLab search trend; body and response are passed through unchanged."""
    return _forward(request, "search-trend", body or {})


@router.post("/shopping-insight")
def post_shopping_insight(request: Request, body: Optional[Dict[str, Any]] = Body(None)) -> Dict[str, Any]:
    """Naver DataLab shopping insight (category trends); passed through unchanged."""
    return _forward(request, "shopping-insight", body or {})
