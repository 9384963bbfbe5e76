# =============================================
# File: ctxcommerce/services/search.py
# Purpose: Unified search over articles, shortform videos and products
# =============================================
from __future__ import annotations

from typing import Any, Dict, List

from ctxcommerce.errors import UpstreamError
from ctxcommerce.models import SearchResult
from ctxcommerce.services.catalog import fetch_products
from ctxcommerce.services.content import list_articles
from ctxcommerce.services.video import build_shortform_feed, feed_products
from ctxcommerce.utils.logging import logger

# UI sort option -> shopping API sort
SORT_MAP = {"relevance": "sim", "popular": "date", "ai": "sim"}


def _field_hits(term: str, fields: List[str]) -> int:
    return sum(1 for f in fields if f and term in f.lower())


def _content_score(hits: int) -> int:
    return min(100, 50 + hits * 20)


def search_content(query: str) -> List[SearchResult]:
    """Articles and shortform videos whose title/body/tags contain the query."""
    term = (query or "").strip().lower()
    results: List[SearchResult] = []

    for a in list_articles():
        hits = _field_hits(term, [a.title, a.content, *(a.tags or [])]) if term else 0
        if term and not hits:
            continue
        results.append(SearchResult(
            id=a.id,
            type="article",
            title=a.title,
            snippet=a.content[:120],
            image_url=a.hero_image or "",
            tags=a.tags,
            score=_content_score(hits),
        ))

    try:
        feed = build_shortform_feed(feed_products())
    except UpstreamError as e:
        logger.warning(f"search: shortform feed unavailable: {e.message}")
        feed = []

    for sf in feed:
        hits = _field_hits(term, [sf.title, sf.category, sf.summary or ""]) if term else 0
        if term and not hits:
            continue
        results.append(SearchResult(
            id=sf.id,
            type="video",
            title=sf.title,
            snippet=sf.summary or "",
            image_url=sf.poster_url,
            tags=[sf.category],
            score=_content_score(hits),
            link_url=sf.video_url,
        ))

    return sorted(results, key=lambda r: r.score, reverse=True)


def search_products(query: str, sort: str = "relevance") -> List[SearchResult]:
    products, source = fetch_products(query, SORT_MAP.get(sort, "sim"))
    label = "네이버 쇼핑" if source == "naver" else "로컬 상품"
    mapped = [
        SearchResult(
            id=p.id,
            type="product",
            title=p.name,
            snippet=p.description or "네이버 쇼핑 상품",
            image_url=p.image_url,
            link_url=p.link_url,
            tags=[label],
            score=max(50, 100 - idx * 2),
        )
        for idx, p in enumerate(products)
    ]
    if sort == "ai":
        return sorted(mapped, key=lambda r: r.score, reverse=True)
    return mapped


def search(query: str, sort: str = "relevance") -> Dict[str, Any]:
    """
    Content results always come back; a failing product lookup is reported
    in `product_error` instead of failing the whole search.
    """
    content = search_content(query)
    product_error = None
    try:
        products = search_products(query, sort)
    except UpstreamError as e:
        logger.warning(f"search: product lookup failed: {e.message}")
        products, product_error = [], e.message

    type_counts = {
        "article": sum(1 for r in content if r.type == "article"),
        "video": sum(1 for r in content if r.type == "video"),
        "product": len(products),
    }
    type_counts["total"] = type_counts["article"] + type_counts["video"] + type_counts["product"]
    return {
        "query": query,
        "sort": sort,
        "content": content,
        "products": products,
        "product_error": product_error,
        "type_counts": type_counts,
    }
