# =============================================
# File: ctxcommerce/utils/ratelimit.py
# Purpose: In-memory per-client rate limiter for proxy routes
# =============================================
# Sliding window over request timestamps, keyed by session id or client IP.

from __future__ import annotations
import threading
import time
from collections import deque
from typing import Dict, Deque

from fastapi import HTTPException, Request

from ctxcommerce.errors import RateLimitExceeded
from ctxcommerce.utils import settings, slog
from ctxcommerce.utils.metrics import record_rate_limit_hit

_store: Dict[str, Deque[float]] = {}
_lock = threading.Lock()

def client_key(request: Request) -> str:
    """Prefer the front end's session header; fall back to the client IP."""
    session = (request.headers.get("x-session-id") or "").strip()
    if session:
        return f"session:{session}"
    return f"ip:{request.client.host if request.client else 'anon'}"

def check_rate_limit(key: str) -> None:
    """Raise RateLimitExceeded when `key` already used its window."""
    now = time.time()
    max_reqs, window_s = settings.rate_limits()

    with _lock:
        dq = _store.setdefault(key, deque())

        # Drop timestamps outside the window
        cutoff = now - window_s
        while dq and dq[0] < cutoff:
            dq.popleft()

        if len(dq) >= max_reqs:
            raise RateLimitExceeded(f"Rate limit exceeded for {key}")

        dq.append(now)

def reset_rate_limit() -> None:
    """For tests: clear in-memory counters."""
    with _lock:
        _store.clear()

def enforce(request: Request) -> None:
    """FastAPI dependency: HTTP 429 once the caller's window is used up."""
    key = client_key(request)
    try:
        check_rate_limit(key)
    except RateLimitExceeded:
        record_rate_limit_hit()
        slog.set_context(request, rate_limited=True)
        raise HTTPException(status_code=429, detail="Too Many Requests")
