# ctxcommerce/routers/content.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from ctxcommerce.errors import UpstreamError
from ctxcommerce.models import Article, CamelModel, Product, SearchResult, Shortform, VideoMarker
from ctxcommerce.services import catalog, content, search as search_service, video
from ctxcommerce.utils import slog

router = APIRouter(tags=["content"])


class ActiveMarker(CamelModel):
    shortform_id: str
    time: float
    time_label: str
    marker: Optional[VideoMarker] = None
    product: Optional[Product] = None


class SearchResponse(CamelModel):
    query: str
    sort: str
    content: List[SearchResult]
    products: List[SearchResult]
    product_error: Optional[str] = None
    type_counts: Dict[str, int]


def _feed() -> List[Shortform]:
    try:
        return video.build_shortform_feed(video.feed_products())
    except UpstreamError as e:
        raise HTTPException(status_code=e.status, detail=e.message)


@router.get("/articles", response_model=List[Article])
def get_articles() -> List[Article]:
    return content.list_articles()


@router.get("/articles/{article_id}", response_model=Article)
def get_article(article_id: str) -> Article:
    article = content.get_article(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail=f"Article {article_id} not found")
    return article


@router.get("/shortforms", response_model=List[Shortform])
def get_shortforms() -> List[Shortform]:
    """Shortform feed with one product marker per clip."""
    return _feed()


@router.get("/shortforms/{shortform_id}/active", response_model=ActiveMarker)
def get_active_marker(shortform_id: str, t: float = Query(0.0, ge=0)) -> ActiveMarker:
    """Marker (and its product) visible at playback time `t` seconds."""
    clip = next((sf for sf in _feed() if sf.id == shortform_id), None)
    if clip is None:
        raise HTTPException(status_code=404, detail=f"Shortform {shortform_id} not found")

    marker = video.find_active_marker(clip.markers, t)
    product = None
    if marker is not None:
        product = catalog.PRODUCT_STORE.get(marker.product_id)
        if product is None:
            product = next((p for p in video.feed_products() if p.id == marker.product_id), None)
    return ActiveMarker(
        shortform_id=shortform_id,
        time=t,
        time_label=video.format_time(t),
        marker=marker,
        product=product,
    )


@router.get("/search", response_model=SearchResponse)
def get_search(
    request: Request,
    q: str = "여름 셔츠",
    sort: Literal["relevance", "popular", "ai"] = "relevance",
) -> Dict[str, Any]:
    """Articles, videos and products for one query."""
    slog.set_context(request, qhash=slog.qhash(q), sort=sort)
    return search_service.search(q, sort)
