# =============================================
# File: tests/test_consent_attribution.py
# Purpose: Consent store, UTM attribution and the consent routes
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from ctxcommerce.main import app
from ctxcommerce.services.attribution import AttributionStore, pick_utm
from ctxcommerce.services.consent import ConsentStore, parse_state

client = TestClient(app)

def test_unknown_session_reads_unknown():
    store = ConsentStore()
    assert store.get("s1").tracking == "unknown"
    assert store.is_granted("s1") is False

def test_set_and_read_back():
    store = ConsentStore()
    state = store.set("s1", "granted")
    assert state.updated_at.endswith("Z")
    assert store.is_granted("s1")
    store.set("s1", "denied")
    assert store.get("s1").tracking == "denied"

def test_malformed_stored_value_reads_unknown():
    store = ConsentStore()
    store.put_raw("s1", "{not json")
    assert store.get("s1").tracking == "unknown"
    store.put_raw("s2", '{"tracking": "maybe"}')
    assert store.get("s2").tracking == "unknown"

def test_parse_state():
    assert parse_state(None) is None
    assert parse_state('{"tracking": "granted", "updatedAt": "2024-01-01T00:00:00Z"}').tracking == "granted"

def test_pick_utm_keeps_non_empty_values():
    attr = pick_utm({"utm_source": "naver", "utm_medium": "", "utm_campaign": "winter", "ref": "x"})
    assert attr.utm_source == "naver"
    assert attr.utm_medium is None
    assert attr.utm_campaign == "winter"
    assert pick_utm(None).model_dump(exclude_none=True) == {}

def test_attribution_captured_once_per_session():
    store = AttributionStore()
    assert store.capture("s1", {"ref": "x"}) is None
    assert store.get("s1").model_dump(exclude_none=True) == {}

    store.get("s1", {"utm_source": "newsletter"})
    later = store.get("s1", {"utm_source": "ads"})
    assert later.utm_source == "newsletter"

def test_consent_routes():
    assert client.get("/consent/sess_a").json()["tracking"] == "unknown"

    r = client.put("/consent/sess_a", json={"tracking": "granted"})
    assert r.status_code == 200
    assert r.json()["tracking"] == "granted"
    assert "updatedAt" in r.json()
    assert client.get("/consent/sess_a").json()["tracking"] == "granted"

def test_consent_route_rejects_unknown_status():
    assert client.put("/consent/sess_a", json={"tracking": "maybe"}).status_code == 422
