# =============================================
# File: tests/test_event_logger.py
# Purpose: Consent gate, queue/flush semantics, sinks and the background flusher
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import time

import pytest
import requests

from ctxcommerce.errors import SinkError
from ctxcommerce.models import EventPayload
from ctxcommerce.services import analytics
from ctxcommerce.services.attribution import AttributionStore
from ctxcommerce.services.consent import ConsentStore
from ctxcommerce.services.events import DatabaseSink, EventLogger, HttpSink, sink_from_env
from ctxcommerce.utils.metrics import snapshot

def _logger(sink, interval=0.05):
    consent = ConsentStore()
    ev = EventLogger(sink=sink, consent=consent, attribution=AttributionStore(), flush_interval=interval)
    return ev, consent

def _click(product_id="p1"):
    return EventPayload(event="product_click", product_id=product_id, metadata={"placement": "article"})

def test_events_dropped_without_consent(list_sink):
    ev, consent = _logger(list_sink)
    assert ev.log("s1", _click()) is None
    consent.set("s1", "denied")
    assert ev.log("s1", _click()) is None
    assert ev.pending() == 0
    assert snapshot()["counters"]["events_skipped_total"] == 2

def test_granted_event_is_enriched(list_sink):
    ev, consent = _logger(list_sink)
    consent.set("s1", "granted")
    queued = ev.log("s1", _click(), params={"utm_source": "newsletter"})
    assert queued.session_id == "s1"
    assert queued.occurred_at.endswith("Z")
    assert queued.attribution.utm_source == "newsletter"
    assert queued.metadata == {"consent": "granted", "placement": "article"}
    assert ev.pending() == 1

def test_explicit_attribution_wins(list_sink):
    ev, consent = _logger(list_sink)
    consent.set("s1", "granted")
    payload = EventPayload(event="page_view", attribution={"utm_source": "direct"})
    assert ev.log("s1", payload, params={"utm_source": "ads"}).attribution.utm_source == "direct"

def test_flush_empties_queue(list_sink):
    ev, consent = _logger(list_sink)
    consent.set("s1", "granted")
    ev.log("s1", _click("a"))
    ev.log("s1", _click("b"))
    assert [e.product_id for e in ev.flush()] == ["a", "b"]
    assert ev.pending() == 0
    assert ev.flush() == []

def test_flush_to_sink_sends_batch(list_sink):
    ev, consent = _logger(list_sink)
    consent.set("s1", "granted")
    ev.log("s1", _click())
    assert ev.flush_to_sink() == {"sent": 1}
    assert len(list_sink.events) == 1
    assert ev.flush_to_sink() == {"sent": 0}
    assert snapshot()["counters"]["events_flushed_total"] == 1

def test_failed_flush_requeues_at_front(list_sink):
    ev, consent = _logger(list_sink)
    consent.set("s1", "granted")
    ev.log("s1", _click("a"))
    ev.log("s1", _click("b"))

    list_sink.fail = True
    result = ev.flush_to_sink()
    assert result["sent"] == 0 and "sink down" in result["error"]
    assert ev.pending() == 2

    ev.log("s1", _click("c"))
    list_sink.fail = False
    assert ev.flush_to_sink() == {"sent": 3}
    assert [e.product_id for e in list_sink.events] == ["a", "b", "c"]

def test_send_test_event_respects_consent(list_sink):
    ev, consent = _logger(list_sink)
    assert ev.send_test_event("s1") == {"sent": 0, "error": "consent_not_granted"}
    assert list_sink.events == []

    assert ev.send_test_event("s1", respect_consent=False) == {"sent": 1}
    sent = list_sink.events[0]
    assert (sent.event, sent.content_id, sent.widget_version) == ("page_view", "test_content", "test")

def test_send_test_event_overrides_and_bypasses_queue(list_sink):
    ev, consent = _logger(list_sink)
    consent.set("s1", "granted")
    assert ev.send_test_event("s1", payload={"event": "add_to_cart", "productId": "p-seed-1"}) == {"sent": 1}
    assert ev.pending() == 0
    assert list_sink.events[0].product_id == "p-seed-1"

def test_send_test_event_generates_session(list_sink):
    ev, _ = _logger(list_sink)
    ev.send_test_event(respect_consent=False)
    assert list_sink.events[0].session_id.startswith("sess_")

def test_background_flusher(list_sink):
    ev, consent = _logger(list_sink, interval=0.05)
    consent.set("s1", "granted")
    ev.start()
    try:
        assert ev.running
        ev.log("s1", _click())
        deadline = time.time() + 2
        while not list_sink.events and time.time() < deadline:
            time.sleep(0.02)
        assert len(list_sink.events) == 1
    finally:
        ev.stop()
    assert not ev.running

def test_stop_flushes_remaining(list_sink):
    ev, consent = _logger(list_sink, interval=60)
    consent.set("s1", "granted")
    ev.start()
    ev.log("s1", _click())
    ev.stop()
    assert len(list_sink.events) == 1

def test_database_sink_persists():
    ev, consent = _logger(DatabaseSink())
    consent.set("s1", "granted")
    ev.log("s1", _click("p-seed-1"))
    assert ev.flush_to_sink() == {"sent": 1}
    assert ev.pending() == 0
    rows = analytics.list_events()
    assert [(r.event, r.product_id, r.placement) for r in rows] == [("product_click", "p-seed-1", "article")]
    # flushed events are visible to the dashboard right away
    assert analytics.summarize("7d")["clicks"] == 1


def test_http_sink_posts_wire_format(make_session):
    session = make_session()
    ev, consent = _logger(HttpSink("http://collector/events", session=session))
    consent.set("s1", "granted")
    ev.log("s1", _click())
    assert ev.flush_to_sink() == {"sent": 1}
    call = session.calls[0]
    assert call["url"] == "http://collector/events"
    assert call["json"]["events"][0]["sessionId"] == "s1"
    assert call["json"]["events"][0]["productId"] == "p1"

def test_http_sink_wraps_network_errors(make_session):
    sink = HttpSink("http://collector/events", session=make_session(exc=requests.ConnectionError("down")))
    with pytest.raises(SinkError):
        sink.send([])

def test_sink_from_env(monkeypatch):
    monkeypatch.setenv("EVENT_SINK", "console")
    assert sink_from_env().name == "console"
    monkeypatch.setenv("EVENT_SINK", "http")
    assert sink_from_env().name == "http"
    monkeypatch.setenv("EVENT_SINK", "db")
    assert sink_from_env().name == "db"
