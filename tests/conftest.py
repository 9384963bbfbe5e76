# =============================================
# File: tests/conftest.py
# Purpose: Per-test isolation of env, database and in-process state
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import pytest
import requests

from ctxcommerce.db.repo import reset_engine
from ctxcommerce.services.attribution import ATTRIBUTION_STORE
from ctxcommerce.services.catalog import PRODUCT_STORE
from ctxcommerce.services.consent import CONSENT_STORE
from ctxcommerce.services.events import get_event_logger, set_event_logger
from ctxcommerce.utils import rcache
from ctxcommerce.utils.metrics import reset as metrics_reset
from ctxcommerce.utils.ratelimit import reset_rate_limit


class ListSink:
    """Event sink that keeps batches in memory; fails while `fail` is set."""
    name = "memory"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batches = []

    def send(self, events):
        if self.fail:
            raise RuntimeError("sink down")
        self.batches.append(list(events))

    @property
    def events(self):
        return [e for batch in self.batches for e in batch]


@pytest.fixture(autouse=True)
def _isolated_state(monkeypatch, tmp_path):
    # Local fallback catalog and no LLM unless a test opts in
    for var in ("NAVER_CLIENT_ID", "NAVER_CLIENT_SECRET", "OPENAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DB_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("EVENT_SINK", "db")
    monkeypatch.setenv("RL_MAX_REQS", "100")
    monkeypatch.setenv("RL_WINDOW_SECONDS", "60")

    reset_engine()
    rcache.clear()
    reset_rate_limit()
    metrics_reset()
    PRODUCT_STORE.reset()
    CONSENT_STORE.clear()
    ATTRIBUTION_STORE.clear()
    set_event_logger(None)
    yield
    ev = get_event_logger()
    if ev.running:
        ev.stop()
    set_event_logger(None)
    reset_engine()


@pytest.fixture
def list_sink():
    return ListSink()


class FakeResponse:
    def __init__(self, status=200, data=None, text="", bad_json=False):
        self.status_code = status
        self._data = data if data is not None else {}
        self.text = text
        self._bad_json = bad_json

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        if self._bad_json:
            raise ValueError("not json")
        return self._data


class FakeSession:
    """Stands in for requests.Session; records every call."""

    def __init__(self, response=None, exc=None):
        self.headers = {}
        self.calls = []
        self.response = response or FakeResponse()
        self.exc = exc

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


@pytest.fixture
def make_session():
    def _make(status=200, data=None, text="", bad_json=False, exc=None):
        return FakeSession(FakeResponse(status, data, text, bad_json), exc=exc)
    return _make


@pytest.fixture
def install_naver(monkeypatch, make_session):
    """Configure a Naver client backed by a FakeSession; returns the session."""
    from ctxcommerce.services import naver

    def _install(**kwargs):
        session = make_session(**kwargs)
        monkeypatch.setattr(naver, "get_client", lambda: naver.NaverClient("id", "secret", session=session))
        return session
    return _install
