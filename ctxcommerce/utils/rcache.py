# =============================================
# File: ctxcommerce/utils/rcache.py
# Purpose: Simple in-process TTL cache for upstream shopping API responses
# =============================================
from __future__ import annotations
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Tuple

from ctxcommerce.utils import settings

# Store: key -> (expires_at, value)
_store: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
_lock = threading.Lock()

def _now() -> float:
    return time.time()

def _normalize(value: Any) -> Any:
    if isinstance(value, str):
        return " ".join(value.strip().lower().split())
    return value

def make_key(endpoint: str, params: Dict[str, Any]) -> str:
    norm = {k: _normalize(v) for k, v in sorted((params or {}).items())}
    return f"{endpoint}:{json.dumps(norm, ensure_ascii=False, sort_keys=True)}"

def get(key: str) -> Any | None:
    now = _now()
    with _lock:
        # prune expired
        dead = [k for k, (exp, _) in _store.items() if exp < now]
        for k in dead:
            _store.pop(k, None)

        item = _store.get(key)
        if not item:
            return None
        _, val = item
        # LRU touch: move to end
        _store.move_to_end(key, last=True)
        return val

def set(key: str, value: Any, ttl: int | None = None) -> None:
    exp = _now() + (ttl if ttl is not None else settings.cache_ttl())
    with _lock:
        _store[key] = (exp, value)
        _store.move_to_end(key, last=True)
        # enforce size
        limit = settings.cache_max_entries()
        while len(_store) > limit:
            _store.popitem(last=False)

def clear() -> None:
    with _lock:
        _store.clear()
