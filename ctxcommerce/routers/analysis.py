# ctxcommerce/routers/analysis.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import Field, field_validator

from ctxcommerce.errors import UpstreamError
from ctxcommerce.models import CamelModel, Match, VideoMarker
from ctxcommerce.services import analysis, video
from ctxcommerce.utils import slog

router = APIRouter(tags=["analysis"])


# --------- Schemas ---------

class ArticleAnalysisRequest(CamelModel):
    """
    - title: article headline (optional, used as the fallback seed keyword).
    - content: article body; HTML tags are ignored by the token heuristics.
    - article_id: id the matches are attached to.
    - language: informational only (the heuristics target Korean copy).
    """
    title: str = Field("Untitled Article", max_length=300)
    content: str = Field(..., min_length=1, max_length=50_000)
    article_id: str = Field(analysis.DEFAULT_ARTICLE_ID, min_length=1, max_length=128)
    language: str = "ko"

    @field_validator("content")
    @classmethod
    def _trim_content(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("content must not be empty")
        return v


class ArticleAnalysisResponse(CamelModel):
    matches: List[Match]
    insights: Dict[str, Any]
    model: Optional[str] = None


class VideoAnalysisRequest(CamelModel):
    content_id: str = Field(..., min_length=1)
    video_url: str = ""


class SaveMatchesRequest(CamelModel):
    article_id: str = Field(..., min_length=1)
    matches: List[Match]


# --------- Routes ---------

@router.post("/analysis/article", response_model=ArticleAnalysisResponse)
def post_analyze_article(req: ArticleAnalysisRequest, request: Request) -> ArticleAnalysisResponse:
    """Keyword insights plus product matches for an article."""
    try:
        result = analysis.analyze_article(req.title, req.content, req.article_id)
    except UpstreamError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    slog.set_context(request, article_id=req.article_id, model=result["model"], matches=len(result["matches"]))
    return ArticleAnalysisResponse(**result)


@router.get("/analysis/article/sample")
def get_sample_article() -> Dict[str, str]:
    return {"title": "샘플 기사 제목", "content": analysis.SAMPLE_ARTICLE}


@router.post("/analysis/video")
def post_analyze_video(req: VideoAnalysisRequest) -> Dict[str, List[Dict[str, Any]]]:
    try:
        markers: List[VideoMarker] = video.analyze_video(req.content_id, req.video_url)
    except UpstreamError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return {"markers": [m.wire() for m in markers]}


@router.post("/matches")
def post_matches(req: SaveMatchesRequest) -> Dict[str, int]:
    """Persist the approved subset of `matches`."""
    saved = analysis.save_approved_matches(req.article_id, req.matches)
    return {"saved": saved}


@router.get("/matches")
def get_matches(articleId: str) -> Dict[str, List[Dict[str, Any]]]:
    return {"matches": [m.wire() for m in analysis.fetch_approved_matches(articleId)]}
