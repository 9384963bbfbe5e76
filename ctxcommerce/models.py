# =============================================
# File: ctxcommerce/models.py
# Purpose: Wire/domain types shared by services and routers (camelCase on the wire)
# =============================================
from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialises as camelCase; accepts either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


ProductSource = Literal["api", "csv", "manual", "seed"]
ProductStatus = Literal["active", "paused", "draft"]
ShopSort = Literal["sim", "date", "asc", "dsc", "pop"]


class Product(CamelModel):
    id: str
    name: str
    description: str = ""
    price: float = 0
    image_url: str = ""
    link_url: str = ""
    brand: Optional[str] = None
    source: Optional[ProductSource] = None
    updated_at: Optional[str] = None
    margin: Optional[float] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    badges: Optional[List[str]] = None
    shortform_matches: Optional[int] = None
    article_matches: Optional[int] = None
    ai_score: Optional[float] = None
    tags: Optional[List[str]] = None
    status: Optional[ProductStatus] = None


class ProductInput(CamelModel):
    """Product fields accepted on create (id is assigned by the store)."""
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: float = Field(0, ge=0)
    image_url: str = ""
    link_url: str = "#"
    brand: Optional[str] = None
    source: ProductSource = "manual"
    margin: Optional[float] = None
    category: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    badges: Optional[List[str]] = None
    ai_score: Optional[float] = Field(None, ge=0, le=100)
    tags: Optional[List[str]] = None
    status: ProductStatus = "draft"


class Match(CamelModel):
    id: str
    article_id: str
    product_id: str
    matched_keyword: str
    context_sentence: str = ""
    context_score: float = 0
    is_approved: bool = False
    reason_label: Optional[str] = None


class Article(CamelModel):
    id: str
    title: str
    content: str
    category: Optional[str] = None
    author: Optional[str] = None
    hero_image: Optional[str] = None
    video_loop_url: Optional[str] = None
    read_time_minutes: Optional[int] = None
    tags: Optional[List[str]] = None


class Position(BaseModel):
    x: float
    y: float


class VideoMarker(CamelModel):
    id: str
    product_id: str
    start: float
    end: float
    position: Position
    keyword: str


class Shortform(CamelModel):
    id: str
    title: str
    category: str
    brand: Optional[str] = None
    video_url: str
    poster_url: str
    markers: List[VideoMarker] = []
    summary: Optional[str] = None


SearchResultType = Literal["article", "product", "video"]


class SearchResult(CamelModel):
    id: str
    type: SearchResultType
    title: str
    snippet: str
    image_url: str = ""
    tags: Optional[List[str]] = None
    score: float
    link_url: Optional[str] = None


class AnalyticsData(CamelModel):
    date: str
    impressions: int
    clicks: int
    ctr: float


# ---------- Events / consent ----------

ConsentStatus = Literal["granted", "denied", "unknown"]

EventName = Literal[
    "video_started",
    "video_completed",
    "marker_visible",
    "product_click",
    "add_to_cart",
    "product_impression",
    "scroll_depth",
    "widget_loaded",
    "page_view",
]

MetadataValue = Union[str, int, float, bool, None]


class ConsentState(CamelModel):
    tracking: ConsentStatus = "unknown"
    updated_at: Optional[str] = None


class Attribution(CamelModel):
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


class EventLocation(CamelModel):
    # For video: seconds; for articles: scroll depth
    timecode_seconds: Optional[float] = None
    scroll_depth_percent: Optional[float] = None


class EventPayload(CamelModel):
    event: EventName
    content_id: Optional[str] = None
    product_id: Optional[str] = None
    matched_keyword: Optional[str] = None
    widget_version: Optional[str] = None
    location: Optional[EventLocation] = None
    viewable: Optional[bool] = None
    cta: Optional[str] = None
    attribution: Optional[Attribution] = None
    metadata: Optional[Dict[str, MetadataValue]] = None


class QueuedEvent(EventPayload):
    session_id: str
    occurred_at: str
