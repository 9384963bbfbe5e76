# =============================================
# File: ctxcommerce/services/events.py
# Purpose: Consent-gated event queue with interval flushing to a pluggable sink
# =============================================
from __future__ import annotations

import datetime as dt
import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from ctxcommerce.errors import SinkError
from ctxcommerce.models import EventPayload, QueuedEvent
from ctxcommerce.services.analytics import store_events
from ctxcommerce.services.attribution import ATTRIBUTION_STORE, AttributionStore
from ctxcommerce.services.consent import CONSENT_STORE, ConsentStore
from ctxcommerce.utils import settings, slog
from ctxcommerce.utils.logging import logger
from ctxcommerce.utils.metrics import incr


def new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:12]}"


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


# ---------- Sinks ----------

class EventSink(Protocol):
    name: str

    def send(self, events: List[QueuedEvent]) -> None:
        """Deliver a batch or raise."""


class DatabaseSink:
    name = "db"

    def send(self, events: List[QueuedEvent]) -> None:
        try:
            store_events(events)
        except Exception as e:
            raise SinkError(f"db sink failed: {e}") from e


class HttpSink:
    """POSTs {"events": [...]} to a collector (by default this service's /events)."""
    name = "http"

    def __init__(self, endpoint: str, timeout: float = 5.0, session: Optional[requests.Session] = None) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self._session = session or requests.Session()

    def send(self, events: List[QueuedEvent]) -> None:
        try:
            resp = self._session.post(
                self.endpoint,
                json={"events": [e.wire() for e in events]},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise SinkError(f"http sink failed: {e}") from e


class ConsoleSink:
    name = "console"

    def send(self, events: List[QueuedEvent]) -> None:
        logger.info(f"[event:flush] {len(events)} events {[e.wire() for e in events]}")


def sink_from_env() -> EventSink:
    kind = settings.event_sink()
    if kind == "http":
        return HttpSink(settings.event_endpoint())
    if kind == "console":
        return ConsoleSink()
    return DatabaseSink()


# ---------- Logger ----------

class EventLogger:
    """
    In-memory event queue.

    - log() drops events unless the session granted tracking consent.
    - flush_to_sink() hands the whole queue to the sink; on failure the batch
      goes back to the front of the queue in its original order.
    - start() runs flush_to_sink() every `flush_interval` seconds on a daemon
      thread; stop() ends it and flushes once more.
    """

    def __init__(
        self,
        sink: Optional[EventSink] = None,
        consent: Optional[ConsentStore] = None,
        attribution: Optional[AttributionStore] = None,
        flush_interval: Optional[float] = None,
    ) -> None:
        self.sink = sink or sink_from_env()
        self.consent = consent or CONSENT_STORE
        self.attribution = attribution or ATTRIBUTION_STORE
        self.flush_interval = flush_interval if flush_interval is not None else settings.event_flush_interval()
        self._queue: List[QueuedEvent] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- queue ---

    def log(
        self,
        session_id: str,
        payload: EventPayload,
        params: Optional[Mapping[str, str]] = None,
    ) -> Optional[QueuedEvent]:
        consent = self.consent.get(session_id)
        if consent.tracking != "granted":
            incr("events_skipped_total")
            logger.debug(f"[event:skipped] {payload.event} tracking consent not granted")
            return None

        attribution = payload.attribution or self.attribution.get(session_id, params)
        metadata = {"consent": consent.tracking, **(payload.metadata or {})}
        enriched = QueuedEvent(
            **payload.model_dump(exclude={"attribution", "metadata"}),
            attribution=attribution,
            metadata=metadata,
            session_id=session_id,
            occurred_at=_now_iso(),
        )
        with self._lock:
            self._queue.append(enriched)
        incr("events_logged_total")
        logger.debug(f"[event] {enriched.wire()}")
        return enriched

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def flush(self) -> List[QueuedEvent]:
        """Take everything queued; the queue is empty afterwards."""
        with self._lock:
            snapshot, self._queue = self._queue, []
        return snapshot

    def _requeue(self, events: List[QueuedEvent]) -> None:
        with self._lock:
            self._queue[:0] = events

    def flush_to_sink(self) -> Dict[str, Any]:
        events = self.flush()
        if not events:
            return {"sent": 0}
        try:
            self.sink.send(events)
        except Exception as e:
            self._requeue(events)
            logger.warning(f"[event:flush:error] {e}")
            slog.log_event("events.flush_failed", sink=self.sink.name, count=len(events), error=str(e))
            return {"sent": 0, "error": str(e)}
        incr("events_flushed_total", len(events))
        slog.log_event("events.flushed", sink=self.sink.name, count=len(events))
        return {"sent": len(events)}

    def send_test_event(
        self,
        session_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        respect_consent: bool = True,
    ) -> Dict[str, Any]:
        """Send one page_view event straight to the sink to check the wiring."""
        session_id = session_id or new_session_id()
        if respect_consent and not self.consent.is_granted(session_id):
            return {"sent": 0, "error": "consent_not_granted"}

        data: Dict[str, Any] = {"event": "page_view", "contentId": "test_content", "widgetVersion": "test"}
        data.update(payload or {})
        test = EventPayload.model_validate(data)
        enriched = QueuedEvent(
            **test.model_dump(exclude={"attribution"}),
            attribution=test.attribution or self.attribution.get(session_id),
            session_id=session_id,
            occurred_at=_now_iso(),
        )
        try:
            self.sink.send([enriched])
        except Exception as e:
            return {"sent": 0, "error": str(e)}
        return {"sent": 1}

    # --- background flusher ---

    def _run(self) -> None:
        while not self._stop.wait(self.flush_interval):
            self.flush_to_sink()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="event-flusher", daemon=True)
        self._thread.start()
        logger.info(f"event logger started (sink={self.sink.name}, interval={self.flush_interval}s)")

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=self.flush_interval + 1)
            self._thread = None
        self.flush_to_sink()

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())


_event_logger: Optional[EventLogger] = None
_logger_lock = threading.Lock()


def get_event_logger() -> EventLogger:
    global _event_logger
    with _logger_lock:
        if _event_logger is None:
            _event_logger = EventLogger()
        return _event_logger


def set_event_logger(instance: Optional[EventLogger]) -> None:
    """Swap the process-wide logger (tests)."""
    global _event_logger
    with _logger_lock:
        _event_logger = instance
