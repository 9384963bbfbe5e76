# =============================================
# File: ctxcommerce/services/consent.py
# Purpose: Per-session tracking consent
# =============================================
from __future__ import annotations

import datetime as dt
import json
import threading
from typing import Dict, Optional

from pydantic import ValidationError

from ctxcommerce.models import ConsentState, ConsentStatus


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def parse_state(raw: Optional[str]) -> Optional[ConsentState]:
    """Stored JSON -> ConsentState; None for missing or malformed values."""
    if not raw:
        return None
    try:
        return ConsentState.model_validate_json(raw)
    except (ValidationError, ValueError):
        return None


class ConsentStore:
    """
    Consent per session id, kept as serialized JSON like the browser's
    local storage entry. Unknown sessions read as {"tracking": "unknown"}.
    """
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._raw: Dict[str, str] = {}

    def get(self, session_id: str) -> ConsentState:
        with self._lock:
            raw = self._raw.get(session_id)
        return parse_state(raw) or ConsentState(tracking="unknown")

    def set(self, session_id: str, status: ConsentStatus) -> ConsentState:
        state = ConsentState(tracking=status, updated_at=_now_iso())
        with self._lock:
            self._raw[session_id] = json.dumps(state.wire())
        return state

    def put_raw(self, session_id: str, raw: str) -> None:
        """Store an already-serialized value as is (imports from clients)."""
        with self._lock:
            self._raw[session_id] = raw

    def is_granted(self, session_id: str) -> bool:
        return self.get(session_id).tracking == "granted"

    def clear(self) -> None:
        with self._lock:
            self._raw.clear()


CONSENT_STORE = ConsentStore()
