# =============================================
# File: ctxcommerce/services/catalog.py
# Purpose: Product catalog: seed data, local search/sort, admin filters, in-memory store
# =============================================
from __future__ import annotations

import datetime as dt
import threading
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ctxcommerce.models import Product, ProductInput
from ctxcommerce.services import naver
from ctxcommerce.utils import rcache
from ctxcommerce.utils.logging import logger
from ctxcommerce.utils.metrics import record_product_source

DEFAULT_QUERY = "여름 셔츠"

_SEED: List[Dict[str, Any]] = [
    {
        "id": "p-seed-1", "name": "울 블렌드 더블 코트", "brand": "Contextual Studio",
        "description": "가벼운 울 혼방으로 만든 더블브레스티드 코트",
        "price": 189000, "margin": 42000, "image_url": "https://picsum.photos/seed/coat/400/400",
        "link_url": "#", "category": "아우터", "tags": ["겨울", "코트"], "updated_at": "2024-12-15",
        "source": "seed", "shortform_matches": 6, "article_matches": 4, "ai_score": 92,
        "status": "active", "badges": ["주력"],
    },
    {
        "id": "p-seed-2", "name": "캐시미어 블렌드 니트", "brand": "Naver Select",
        "description": "부드러운 촉감의 크루넥 니트웨어",
        "price": 129000, "margin": 32000, "image_url": "https://picsum.photos/seed/knit/400/400",
        "link_url": "#", "category": "니트", "tags": ["베이직", "레이어드"], "updated_at": "2024-12-10",
        "source": "csv", "shortform_matches": 3, "article_matches": 5, "ai_score": 88,
        "status": "active",
    },
    {
        "id": "p-seed-3", "name": "클래식 첼시 부츠", "brand": "Handmade Seoul",
        "description": "천연 가죽으로 제작된 첼시 부츠",
        "price": 259000, "margin": 61000, "image_url": "https://picsum.photos/seed/boots/400/400",
        "link_url": "#", "category": "신발", "tags": ["가죽", "포멀"], "updated_at": "2024-12-05",
        "source": "manual", "shortform_matches": 2, "article_matches": 2, "ai_score": 81,
        "status": "paused",
    },
    {
        "id": "p-seed-4", "name": "테크 플리스 후디", "brand": "Contextual Studio",
        "description": "가벼운 보온성의 플리스 후드 집업",
        "price": 89000, "margin": 18000, "image_url": "https://picsum.photos/seed/hoodie/400/400",
        "link_url": "#", "category": "캐주얼", "tags": ["보온", "운동"], "updated_at": "2024-12-18",
        "source": "api", "shortform_matches": 5, "article_matches": 3, "ai_score": 86,
        "status": "active", "rating": 4.5,
    },
    {
        "id": "p-seed-5", "name": "프리미엄 슬림 셔츠", "brand": "Naver Select",
        "description": "스트레치 원단의 슬림 핏 셔츠",
        "price": 69000, "margin": 12000, "image_url": "https://picsum.photos/seed/shirt/400/400",
        "link_url": "#", "category": "셔츠", "tags": ["오피스", "데일리"], "updated_at": "2024-12-12",
        "source": "seed", "shortform_matches": 4, "article_matches": 1, "ai_score": 79,
        "status": "active",
    },
    {
        "id": "p-seed-6", "name": "라이트 패딩 베스트", "brand": "Contextual Studio",
        "description": "도심형 레이어드에 맞춘 경량 패딩",
        "price": 109000, "margin": 26000, "image_url": "https://picsum.photos/seed/vest/400/400",
        "link_url": "#", "category": "아우터", "tags": ["레이어드", "도심"], "updated_at": "2024-12-03",
        "source": "csv", "shortform_matches": 1, "article_matches": 2, "ai_score": 73,
        "status": "draft",
    },
    {
        "id": "p-seed-7", "name": "러너 스니커즈", "brand": "Handmade Seoul",
        "description": "레트로 러닝 실루엣의 스니커즈",
        "price": 139000, "margin": 24000, "image_url": "https://picsum.photos/seed/sneakers/400/400",
        "link_url": "#", "category": "신발", "tags": ["레트로", "러닝"], "updated_at": "2024-12-08",
        "source": "manual", "shortform_matches": 2, "article_matches": 3, "ai_score": 77,
        "status": "active",
    },
    {
        "id": "p-seed-8", "name": "미니멀 레더 백팩", "brand": "Contextual Studio",
        "description": "데일리로 쓰기 좋은 미니멀 백팩",
        "price": 159000, "margin": 35000, "image_url": "https://picsum.photos/seed/backpack/400/400",
        "link_url": "#", "category": "가방", "tags": ["데일리", "미니멀"], "updated_at": "2024-12-02",
        "source": "seed", "shortform_matches": 0, "article_matches": 1, "ai_score": 70,
        "status": "paused",
    },
]


def seed_products() -> List[Product]:
    return [Product(**row) for row in _SEED]


def _date_key(value: Optional[str]) -> float:
    """Epoch seconds for an ISO date; missing/invalid dates sort as the epoch."""
    if not value:
        return 0.0
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.timestamp()


def _match_count(p: Product) -> int:
    return (p.shortform_matches or 0) + (p.article_matches or 0)


# ---------- Local search (used when the shopping API is not configured) ----------

def search_local(products: List[Product], query: str, sort: str = "sim") -> List[Product]:
    term = (query or "").strip().lower()
    if term:
        def _hit(p: Product) -> bool:
            parts = [p.name, p.description, p.category, p.brand, *(p.tags or [])]
            haystack = " ".join(x for x in parts if x).lower()
            return term in haystack
        filtered = [p for p in products if _hit(p)]
    else:
        filtered = list(products)

    if sort == "asc":
        return sorted(filtered, key=lambda p: p.price)
    if sort == "dsc":
        return sorted(filtered, key=lambda p: p.price, reverse=True)
    if sort == "date":
        return sorted(filtered, key=lambda p: _date_key(p.updated_at), reverse=True)
    # sim / pop: AI score, then match count, then name
    return sorted(filtered, key=lambda p: (-(p.ai_score or 0), -_match_count(p), p.name))


# ---------- Admin catalog filters ----------

def filter_products(
    products: List[Product],
    search: str = "",
    category: str = "all",
    source: str = "all",
    status: str = "all",
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_key: str = "name",
    sort_dir: str = "asc",
) -> List[Product]:
    term = (search or "").strip().lower()
    if term:
        base = [
            p for p in products
            if term in p.name.lower()
            or term in (p.description or "").lower()
            or term in p.id.lower()
            or term in (p.brand or "").lower()
            or any(term in t.lower() for t in (p.tags or []))
        ]
    else:
        base = list(products)

    def _keep(p: Product) -> bool:
        if category != "all" and p.category != category:
            return False
        if source != "all" and p.source != source:
            return False
        if status != "all" and p.status != status:
            return False
        if min_price is not None and p.price < min_price:
            return False
        if max_price is not None and p.price > max_price:
            return False
        return True

    kept = [p for p in base if _keep(p)]

    keys = {
        "price": lambda p: p.price,
        "aiScore": lambda p: p.ai_score if p.ai_score is not None else -1,
        "updatedAt": lambda p: _date_key(p.updated_at),
        "name": lambda p: p.name,
    }
    key = keys.get(sort_key, keys["name"])
    # sorted() is stable in both directions, so ties keep input order
    return sorted(kept, key=key, reverse=(sort_dir == "desc"))


def facets(products: List[Product]) -> Dict[str, List[str]]:
    """Distinct categories/sources in first-seen order, each prefixed by "all"."""
    categories: List[str] = []
    sources: List[str] = []
    for p in products:
        if p.category and p.category not in categories:
            categories.append(p.category)
        if p.source and p.source not in sources:
            sources.append(p.source)
    return {"categories": ["all", *categories], "sources": ["all", *sources]}


# ---------- Store ----------

class ProductStore:
    """
    Thread-safe in-memory product store seeded from the demo catalog.
    Insertion order is preserved.
    """
    def __init__(self, seed: Optional[List[Product]] = None) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, Product] = {}
        for p in seed if seed is not None else seed_products():
            self._items[p.id] = p

    def list(self) -> List[Product]:
        with self._lock:
            return list(self._items.values())

    def get(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return self._items.get(product_id)

    def create(self, data: ProductInput) -> Product:
        product = Product(
            id=f"p-{uuid.uuid4().hex[:8]}",
            updated_at=dt.date.today().isoformat(),
            **data.model_dump(),
        )
        with self._lock:
            self._items[product.id] = product
        logger.info(f"catalog: created product {product.id} ({product.name})")
        return product

    def delete(self, product_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(product_id, None)
        if removed:
            logger.info(f"catalog: deleted product {product_id}")
        return removed is not None

    def reset(self) -> None:
        """For tests: restore the seed catalog."""
        with self._lock:
            self._items = {p.id: p for p in seed_products()}


# Global instance
PRODUCT_STORE = ProductStore()


# ---------- Product lookup (shopping API or local fallback) ----------

def fetch_page(
    query: str = DEFAULT_QUERY,
    sort: str = "sim",
    display: Optional[int] = None,
    start: Optional[int] = None,
) -> Dict[str, Any]:
    """
    One page of products for `query`.
    Returns {"products", "source" ("naver" | "fallback"), "total", "display", "start", "cached"}.
    Upstream errors propagate as UpstreamError.
    """
    display = naver.clamp_display(display)
    start = naver.clamp_start(start)
    client = naver.get_client()

    if client is None:
        matched = search_local(PRODUCT_STORE.list(), query, sort)
        record_product_source("fallback")
        return {
            "products": matched[start - 1 : start - 1 + display],
            "source": "fallback",
            "total": len(matched),
            "display": display,
            "start": start,
            "cached": False,
        }

    key = rcache.make_key("shop", {"q": query, "sort": sort, "display": display, "start": start})
    cached = rcache.get(key)
    if cached is not None:
        record_product_source("cache")
        return {**cached, "cached": True}

    page = client.search_shop(query, display=display, start=start, sort=sort)
    result = {**page, "source": "naver"}
    rcache.set(key, result)
    record_product_source("naver")
    return {**result, "cached": False}


def fetch_products(query: str = DEFAULT_QUERY, sort: str = "sim") -> Tuple[List[Product], str]:
    """(products, source) for content surfaces that just need a product list."""
    page = fetch_page(query, sort)
    return page["products"], page["source"]


def split_recommendations(recommended: List[Product]) -> Tuple[List[Product], List[Product]]:
    """First ceil(n/2) are behaviour-based, the rest bundle-based."""
    half = (len(recommended) + 1) // 2
    return recommended[:half], recommended[half:]
