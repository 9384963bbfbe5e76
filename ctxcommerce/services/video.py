# =============================================
# File: ctxcommerce/services/video.py
# Purpose: Shoppable video markers and the shortform feed
# =============================================
from __future__ import annotations

from typing import List, Optional

from ctxcommerce.models import Position, Product, Shortform, VideoMarker
from ctxcommerce.services.catalog import PRODUCT_STORE, fetch_products, search_local

DEMO_VIDEO_URL = "https://interactive-examples.mdn.mozilla.net/media/cc0-videos/flower.mp4"
FEED_QUERY = "패션"
FEED_SIZE = 4
VIDEO_MARKERS = 3


def feed_products(query: str = FEED_QUERY) -> List[Product]:
    """
    Products for video surfaces. The local catalog has no item matching the
    generic feed query, so it serves its full ranked list instead.
    """
    products, source = fetch_products(query)
    if not products and source == "fallback":
        products = search_local(PRODUCT_STORE.list(), "", "sim")
    return products


def find_active_marker(markers: List[VideoMarker], t: float) -> Optional[VideoMarker]:
    for m in markers:
        if m.start <= t <= m.end:
            return m
    return None


def format_time(seconds: float) -> str:
    seconds = max(0.0, float(seconds or 0))
    return f"{int(seconds // 60):02d}:{int(seconds % 60):02d}"


def build_video_markers(products: List[Product], limit: int = VIDEO_MARKERS) -> List[VideoMarker]:
    """Staggered markers for the shoppable demo clip."""
    return [
        VideoMarker(
            id=f"m-{p.id}",
            product_id=p.id,
            start=2 + idx * 5,
            end=10 + idx * 5,
            position=Position(x=60 - idx * 8, y=40 + idx * 8),
            keyword=p.name[:10],
        )
        for idx, p in enumerate(products[:limit])
    ]


def build_shortform_feed(products: List[Product], limit: int = FEED_SIZE) -> List[Shortform]:
    feed: List[Shortform] = []
    for idx, p in enumerate(products[:limit]):
        feed.append(Shortform(
            id=f"sf-{p.id}",
            title=p.name,
            category=p.category or "상품",
            brand="네이버 쇼핑",
            video_url=DEMO_VIDEO_URL,
            poster_url=p.image_url,
            summary=p.description or "네이버 쇼핑 상품",
            markers=[
                VideoMarker(
                    id=f"m-{p.id}-1",
                    product_id=p.id,
                    start=3 + idx * 2,
                    end=12 + idx * 2,
                    position=Position(x=65, y=42),
                    keyword=p.name[:10],
                ),
            ],
        ))
    return feed


def analyze_video(content_id: str, video_url: str) -> List[VideoMarker]:
    # No frame analysis: markers come from the feed products
    return build_video_markers(feed_products())
