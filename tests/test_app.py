# =============================================
# File: tests/test_app.py
# Purpose: Health, root redirect, CORS and lifespan wiring
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from ctxcommerce.main import app
from ctxcommerce.services.events import EventLogger, get_event_logger, set_event_logger

def test_health_reports_integrations(monkeypatch):
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok", "naver": False, "llm": False}
    monkeypatch.setenv("NAVER_CLIENT_ID", "id")
    monkeypatch.setenv("NAVER_CLIENT_SECRET", "secret")
    assert client.get("/health").json()["naver"] is True

def test_root_redirects_to_docs():
    client = TestClient(app)
    r = client.get("/", follow_redirects=False)
    assert r.status_code in (302, 307)
    assert r.headers["location"] == "/docs"

def test_cors_preflight():
    client = TestClient(app)
    r = client.options(
        "/products",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"

def test_lifespan_starts_and_stops_event_logger(list_sink):
    ev = EventLogger(sink=list_sink, flush_interval=60)
    set_event_logger(ev)
    with TestClient(app) as client:
        assert get_event_logger().running
        client.put("/consent/s1", json={"tracking": "granted"})
        client.post("/events/log", json={"sessionId": "s1", "event": "page_view"})
    assert not ev.running
    # shutdown flushes what is still queued
    assert [e.event for e in list_sink.events] == ["page_view"]
