# =============================================
# File: ctxcommerce/services/attribution.py
# Purpose: UTM attribution captured once per session
# =============================================
from __future__ import annotations

import threading
from typing import Dict, Mapping, Optional

from ctxcommerce.models import Attribution

_UTM_KEYS = {
    "utm_source": "utm_source",
    "utm_medium": "utm_medium",
    "utm_campaign": "utm_campaign",
}


def pick_utm(params: Optional[Mapping[str, str]]) -> Attribution:
    """Only non-empty utm_* values are kept."""
    params = params or {}
    found = {field: params.get(key) for key, field in _UTM_KEYS.items() if params.get(key)}
    return Attribution(**found)


def _is_empty(attr: Attribution) -> bool:
    return not attr.model_dump(exclude_none=True)


class AttributionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_session: Dict[str, Attribution] = {}

    def capture(self, session_id: str, params: Optional[Mapping[str, str]]) -> Optional[Attribution]:
        utm = pick_utm(params)
        if _is_empty(utm):
            return None
        with self._lock:
            self._by_session[session_id] = utm
        return utm

    def get(self, session_id: str, params: Optional[Mapping[str, str]] = None) -> Attribution:
        """Stored attribution, else whatever the given params carry, else empty."""
        with self._lock:
            stored = self._by_session.get(session_id)
        if stored is not None:
            return stored
        return self.capture(session_id, params) or Attribution()

    def clear(self) -> None:
        with self._lock:
            self._by_session.clear()


ATTRIBUTION_STORE = AttributionStore()
