# =============================================
# File: tests/test_naver_client.py
# Purpose: Shopping API mapping, clamping and error handling (no network)
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import pytest
import requests

from ctxcommerce.errors import NotConfiguredError, UpstreamError
from ctxcommerce.services import naver


def _client(session):
    return naver.NaverClient("id", "secret", timeout=3, session=session)

def test_clamp_display_and_start():
    assert naver.clamp_display(None) == 20
    assert naver.clamp_display(0) == 20
    assert naver.clamp_display(100) == 40
    assert naver.clamp_display(-5) == 1
    assert naver.clamp_start(0) == 1
    assert naver.clamp_start(7) == 7

def test_map_item_strips_tags_and_decodes_entities():
    p = naver.map_item({
        "productId": 123,
        "title": "<b>여름</b> 셔츠 &amp; &quot;바지&quot;",
        "lprice": "15900",
        "image": "https://img/1.jpg",
        "link": "https://shop/1",
        "mallName": "테스트몰",
        "category1": "패션의류",
    })
    assert p.id == "123"
    assert p.name == '여름 셔츠 & "바지"'
    assert p.price == 15900
    assert p.description == "테스트몰"
    assert p.category == "패션의류"

def test_map_item_defaults():
    p = naver.map_item({"productId": "9", "title": "x", "lprice": ""})
    assert p.price == 0
    assert p.description == naver.DEFAULT_DESCRIPTION
    assert p.category is None

def test_search_shop_sends_credentials_and_clamped_params(make_session):
    session = make_session(data={
        "total": 321,
        "items": [{"productId": "1", "title": "<b>셔츠</b>", "lprice": "1000"}],
    })
    page = _client(session).search_shop("셔츠", display=99, start=0, sort="asc")

    assert session.headers["X-Naver-Client-Id"] == "id"
    assert session.headers["X-Naver-Client-Secret"] == "secret"
    call = session.calls[0]
    assert call["url"].endswith(naver.SHOP_PATH)
    assert call["params"] == {"query": "셔츠", "display": 40, "start": 1, "sort": "asc"}
    assert page["total"] == 321 and page["display"] == 40 and page["start"] == 1
    assert [p.name for p in page["products"]] == ["셔츠"]

def test_search_shop_missing_items_is_empty_page(make_session):
    page = _client(make_session(data={})).search_shop("q")
    assert page["products"] == [] and page["total"] == 0

def test_non_2xx_raises_with_upstream_status(make_session):
    session = make_session(status=401, text='{"errorMessage":"auth"}')
    with pytest.raises(UpstreamError) as ei:
        _client(session).search_shop("q")
    assert ei.value.status == 401
    assert ei.value.message.startswith("Naver API error")

def test_network_failure_is_502(make_session):
    session = make_session(exc=requests.ConnectionError("boom"))
    with pytest.raises(UpstreamError) as ei:
        _client(session).search_trend({})
    assert ei.value.status == 502

def test_invalid_json_is_502(make_session):
    session = make_session(bad_json=True)
    with pytest.raises(UpstreamError) as ei:
        _client(session).shopping_insight({})
    assert ei.value.status == 502

def test_get_client_requires_both_credentials(monkeypatch):
    assert naver.get_client() is None
    monkeypatch.setenv("NAVER_CLIENT_ID", "id")
    assert naver.get_client() is None
    with pytest.raises(NotConfiguredError):
        naver.require_client()
    monkeypatch.setenv("NAVER_CLIENT_SECRET", "secret")
    assert isinstance(naver.get_client(), naver.NaverClient)
