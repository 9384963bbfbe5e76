# =============================================
# File: ctxcommerce/utils/slog.py
# Purpose: Minimal structured logging (JSON) + helpers for FastAPI
# =============================================
from __future__ import annotations
import json
import logging
import uuid
import hashlib
from typing import Any, Dict

from ctxcommerce.utils import settings

_LOGGER_NAME = "ctxcommerce"
_LEVEL = settings.log_level()

_logger = logging.getLogger(_LOGGER_NAME)
if not _logger.handlers:
    _logger.setLevel(getattr(logging, _LEVEL, logging.INFO))
    _handler = logging.StreamHandler()
    # Emit the message as-is; we pre-format JSON strings ourselves
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    _logger.propagate = True  # allow pytest caplog to capture

def qhash(text: str) -> str:
    """Short hash of a normalized search query (search terms are not logged raw)."""
    norm = " ".join((text or "").strip().lower().split())
    return hashlib.sha256(norm.encode("utf-8")).hexdigest()[:10]

def new_request_id() -> str:
    return uuid.uuid4().hex

def log_event(event: str, **fields: Any) -> None:
    rec = {"event": event}
    rec.update(fields)
    _logger.info(json.dumps(rec, ensure_ascii=False, default=str))

def set_context(request, **fields: Any) -> None:
    """Merge route-level fields into the context the middleware logs."""
    ctx = getattr(request.state, "log_context", None) or {}
    ctx.update(fields)
    request.state.log_context = ctx

def finalize_request_log(
    request_id: str,
    method: str,
    path: str,
    status: int,
    latency_ms: int,
    client_ip: str | None,
    ctx: Dict[str, Any] | None = None,
) -> None:
    payload: Dict[str, Any] = {
        "event": "request.completed",
        "request_id": request_id,
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": latency_ms,
        "client_ip": client_ip or "",
    }
    if ctx:
        payload.update(ctx)
    _logger.info(json.dumps(payload, ensure_ascii=False, default=str))
