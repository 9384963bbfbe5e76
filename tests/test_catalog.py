# =============================================
# File: tests/test_catalog.py
# Purpose: Local search, admin filters, facets and the product store
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from ctxcommerce.models import ProductInput
from ctxcommerce.services import catalog
from ctxcommerce.services.catalog import (
    ProductStore,
    facets,
    fetch_page,
    filter_products,
    search_local,
    seed_products,
    split_recommendations,
)

def _ids(products):
    return [p.id for p in products]

def test_search_local_matches_name_and_description():
    out = search_local(seed_products(), "셔츠")
    assert _ids(out) == ["p-seed-5"]

def test_search_local_matches_brand_case_insensitive_and_ranks_by_ai_score():
    out = search_local(seed_products(), "contextual studio")
    assert _ids(out) == ["p-seed-1", "p-seed-4", "p-seed-6", "p-seed-8"]

def test_search_local_sort_orders():
    seed = seed_products()
    by_price = search_local(seed, "", "asc")
    assert by_price[0].id == "p-seed-5" and by_price[-1].id == "p-seed-3"
    assert _ids(search_local(seed, "", "dsc")) == list(reversed(_ids(by_price)))
    assert search_local(seed, "", "date")[0].id == "p-seed-4"

def test_filter_products_by_status_and_price_range():
    seed = seed_products()
    active = filter_products(seed, status="active")
    assert set(_ids(active)) == {"p-seed-1", "p-seed-2", "p-seed-4", "p-seed-5", "p-seed-7"}

    mid = filter_products(seed, min_price=100000, max_price=160000, sort_key="price", sort_dir="desc")
    assert _ids(mid) == ["p-seed-8", "p-seed-7", "p-seed-2", "p-seed-6"]

def test_filter_products_search_covers_id_and_tags():
    seed = seed_products()
    assert _ids(filter_products(seed, search="p-seed-3")) == ["p-seed-3"]
    assert set(_ids(filter_products(seed, search="레이어드"))) == {"p-seed-2", "p-seed-6"}

def test_filter_products_category_and_ai_score_sort():
    out = filter_products(seed_products(), category="아우터", sort_key="aiScore", sort_dir="desc")
    assert _ids(out) == ["p-seed-1", "p-seed-6"]

def test_facets_first_seen_order_with_all_prefix():
    f = facets(seed_products())
    assert f["categories"] == ["all", "아우터", "니트", "신발", "캐주얼", "셔츠", "가방"]
    assert f["sources"] == ["all", "seed", "csv", "manual", "api"]

def test_product_store_crud_defaults():
    store = ProductStore(seed=[])
    p = store.create(ProductInput(name="테스트 상품", price=1000))
    assert p.id.startswith("p-")
    assert p.status == "draft" and p.source == "manual" and p.link_url == "#"
    assert p.updated_at
    assert store.get(p.id) == p
    assert store.delete(p.id) is True
    assert store.delete(p.id) is False
    assert store.list() == []

def test_split_recommendations_halves_round_up():
    items = seed_products()[:5]
    behavior, bundle = split_recommendations(items)
    assert len(behavior) == 3 and len(bundle) == 2
    assert split_recommendations([]) == ([], [])

def test_fetch_page_uses_local_fallback_without_credentials():
    page = fetch_page("셔츠")
    assert page["source"] == "fallback"
    assert page["total"] == 1
    assert page["cached"] is False
    assert _ids(page["products"]) == ["p-seed-5"]

def test_fetch_page_clamps_and_slices_fallback():
    page = fetch_page("", display=100)
    assert page["display"] == 40
    assert len(page["products"]) == 8

    window = fetch_page("", display=2, start=3)
    ranked = search_local(catalog.PRODUCT_STORE.list(), "", "sim")
    assert _ids(window["products"]) == _ids(ranked[2:4])
    assert window["start"] == 3
