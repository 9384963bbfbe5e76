# =============================================
# File: tests/test_logging.py
# =============================================
import sys, os, json
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from ctxcommerce.main import app
from ctxcommerce.utils import slog

client = TestClient(app)

def _json_events(caplog, name: str):
    out = []
    for rec in caplog.records:
        try:
            data = json.loads(rec.message)
        except ValueError:
            continue
        if isinstance(data, dict) and data.get("event") == name:
            out.append(data)
    return out

def test_qhash_normalizes_queries():
    assert slog.qhash("  여름   셔츠 ") == slog.qhash("여름 셔츠")
    assert len(slog.qhash("x")) == 10

def test_structured_log_on_success(caplog):
    caplog.set_level("INFO", logger="ctxcommerce")
    r = client.get("/products", params={"q": "셔츠"})
    assert r.status_code == 200

    evt = _json_events(caplog, "request.completed")[-1]
    assert evt["path"] == "/products"
    assert evt["status"] == 200
    assert isinstance(evt["latency_ms"], int)
    assert evt["request_id"] == r.headers["X-Request-ID"]
    assert evt["qhash"] == slog.qhash("셔츠")
    assert evt["source"] == "fallback"
    assert evt["rate_limited"] is False
    # raw search terms never reach the log
    assert "셔츠" not in json.dumps(evt, ensure_ascii=False)

def test_structured_log_rate_limited(monkeypatch, caplog):
    caplog.set_level("INFO", logger="ctxcommerce")
    monkeypatch.setenv("RL_MAX_REQS", "1")
    client.get("/products", params={"q": "코트"})
    client.get("/products", params={"q": "코트"})

    evt = _json_events(caplog, "request.completed")[-1]
    assert evt["status"] == 429
    assert evt["rate_limited"] is True

def test_upstream_call_logged(caplog, install_naver):
    caplog.set_level("INFO", logger="ctxcommerce")
    install_naver(data={"total": 0, "items": []})
    client.get("/products", params={"q": "셔츠"})

    calls = _json_events(caplog, "upstream.call")
    assert calls and calls[0]["status"] == 200
    assert calls[0]["path"] == "/v1/search/shop.json"

def test_event_flush_logged(caplog, list_sink):
    from ctxcommerce.services.events import EventLogger, set_event_logger

    caplog.set_level("INFO", logger="ctxcommerce")
    set_event_logger(EventLogger(sink=list_sink))
    client.put("/consent/s1", json={"tracking": "granted"})
    client.post("/events/log", json={"sessionId": "s1", "event": "page_view"})
    client.post("/events/flush")

    flushed = _json_events(caplog, "events.flushed")
    assert flushed and flushed[-1] == {"event": "events.flushed", "sink": "memory", "count": 1}
