# =============================================
# File: ctxcommerce/services/analysis.py
# Purpose: Article analysis: keyword insights, product matching, optional LLM extraction
# =============================================
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAI
from sqlmodel import select

from ctxcommerce.db.models import ApprovedMatch
from ctxcommerce.db.repo import session_scope
from ctxcommerce.errors import UpstreamError
from ctxcommerce.models import Match
from ctxcommerce.services.catalog import fetch_products
from ctxcommerce.utils import settings
from ctxcommerce.utils.logging import logger
from ctxcommerce.utils.text import contains_any, tokens, unique

DEFAULT_ARTICLE_ID = "demo_article"
MAX_MATCHES = 5
MAX_RETRIES = 1

BRANDS = ["삼성", "삼성전자", "lg", "엘지", "애플", "apple", "현대", "hyundai", "샤오미"]
MODELS = ["아이폰", "갤럭시", "무풍에어컨", "맥북", "s24", "s23", "airpods", "아이패드"]
FEATURES = ["ai", "밝기", "배터리", "줌", "저전력", "방수", "카메라", "센서", "칩", "프로세서"]
POSITIVE = ["좋다", "만족", "선명", "빠르", "향상", "개선", "강점"]
NEGATIVE = ["비싸", "아쉽", "느리", "발열", "불만", "불편", "리스크"]

RISKS_WHEN_NEGATIVE = ["가격 민감도", "배터리/성능 불만 가능성"]
NO_RISK = ["리스크 없음"]

SAMPLE_ARTICLE = (
    "샘플 기사: 애플이 공개한 아이폰 16 Pro는 AI 카메라와 밝기 2600nit을 제공한다.\n"
    "삼성전자 갤럭시 S24 울트라와 비교했을 때 AI 줌 개선과 저전력 모드가 강점으로 언급된다.\n"
    "리뷰어들은 선명하다, 빠르다 같은 긍정적 피드백을 남겼지만 가격이 비싸다, 배터리가 아쉽다는 의견도 있다."
)


# ---------- Heuristics ----------

def analyze_article_stub(content: str, article_id: str = DEFAULT_ARTICLE_ID) -> List[Match]:
    """First five distinct tokens as placeholder matches with descending scores."""
    picks = unique(tokens(content))[:MAX_MATCHES]
    sentence = content[:120] or "추출된 키워드 기반 매칭"
    return [
        Match(
            id=f"m{i + 1}",
            article_id=article_id,
            product_id=f"p{i + 1}",
            matched_keyword=tok,
            context_sentence=sentence,
            context_score=max(60, 95 - i * 5),
            is_approved=True,
            reason_label="LLM stub",
        )
        for i, tok in enumerate(picks)
    ]


def build_insights(text: str) -> Dict[str, Any]:
    """
    Dictionary lookups over the article text.
    Brands match case-sensitively; models and features ignore case.
    """
    text = text or ""
    pos = contains_any(text, POSITIVE, case_sensitive=True)
    neg = contains_any(text, NEGATIVE, case_sensitive=True)
    total = max(1, len(pos) + len(neg))
    sentiment = {
        "positive": round(len(pos) / total, 2),
        "negative": round(len(neg) / total, 2),
        "neutral": round(1 - (len(pos) + len(neg)) / (total * 2), 2),
        "keywords": unique(pos + neg),
    }
    return {
        "brands": contains_any(text, BRANDS, case_sensitive=True),
        "models": contains_any(text, MODELS),
        "features": contains_any(text, FEATURES),
        "sentiment": sentiment,
        "summary": text[:140] + ("..." if len(text) > 140 else ""),
        "risks": list(RISKS_WHEN_NEGATIVE) if neg else list(NO_RISK),
    }


def insight_keywords(insights: Dict[str, Any]) -> List[str]:
    return [
        k for k in [
            *insights.get("brands", []),
            *insights.get("models", []),
            *insights.get("features", []),
            *insights.get("sentiment", {}).get("keywords", []),
        ] if k
    ]


def generate_matches_from_products(
    keywords: List[str],
    content: str = "",
    title: str = "",
    article_id: str = DEFAULT_ARTICLE_ID,
) -> List[Match]:
    """Score catalog products by keyword hits in name + description; keep the top five."""
    kws = [k for k in unique(keywords) if len(k.strip()) > 1]
    seed = kws[0] if kws else (title or "추천")

    try:
        products, _ = fetch_products(seed)
    except UpstreamError as e:
        logger.warning(f"analysis: product lookup for {seed!r} failed: {e.message}")
        return []
    scored: List[Tuple[Any, int, str]] = []
    for p in products:
        haystack = f"{p.name} {p.description or ''}".lower()
        hits = [k for k in kws if k.lower() in haystack]
        base = len(hits) * 20 + (15 if seed.lower() in haystack else 0)
        scored.append((p, min(100, max(50, base)), hits[0] if hits else seed))

    top = sorted(scored, key=lambda row: row[1], reverse=True)[:MAX_MATCHES]
    return [
        Match(
            id=f"kw-{p.id}-{idx}",
            article_id=article_id,
            product_id=p.id,
            matched_keyword=keyword,
            context_sentence=content[:140] or p.description or "추출 키워드 기반 매칭",
            context_score=score,
            is_approved=True,
            reason_label="키워드 매칭",
        )
        for idx, (p, score, keyword) in enumerate(top)
    ]


# ---------- LLM extraction ----------

def _build_prompt(title: str, content: str, article_id: str) -> str:
    return "\n".join([
        "You are a content commerce match engine.",
        "Given an article, extract up to 5 keywords with context sentences and scores (0-100).",
        'Return JSON ONLY with an array field "matches", using this shape:',
        '{ "matches": [ { "id": "m1", "articleId": "' + article_id + '", "productId": "p1", '
        '"matchedKeyword": "string", "contextSentence": "string from the article", '
        '"contextScore": 0-100, "isApproved": false } ] }',
        "Do not include explanations.",
        "Article title:",
        title,
        "Article content:",
        content,
    ])


def llm_enabled() -> bool:
    return bool(settings.openai_key())


def _chat_completion_with_retry(client, messages) -> Tuple[Optional[str], Optional[str]]:
    """(text, model) or (None, None) after MAX_RETRIES+1 failed attempts."""
    for attempt in range(MAX_RETRIES + 1):
        try:
            resp = client.chat.completions.create(
                model=settings.llm_model(),
                response_format={"type": "json_object"},
                temperature=0.2,
                messages=messages,
                timeout=settings.llm_timeout(),
            )
            text = (resp.choices[0].message.content or "").strip()
            return text, getattr(resp, "model", settings.llm_model())
        except Exception as e:
            logger.warning(f"analysis: LLM attempt {attempt + 1} failed: {e}")
    return None, None


def parse_llm_matches(text: str, article_id: str) -> List[Match]:
    """Tolerant to wrappers around the JSON object; invalid entries are skipped."""
    if not text:
        return []
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return []
    try:
        data = json.loads(text[start:end + 1])
    except ValueError:
        logger.warning("analysis: LLM returned unparsable JSON")
        return []
    raw = data.get("matches") if isinstance(data, dict) else None
    if not isinstance(raw, list):
        return []

    out: List[Match] = []
    for idx, m in enumerate(raw):
        if not isinstance(m, dict):
            continue
        try:
            out.append(Match(**{
                **m,
                "id": m.get("id") or f"m{idx + 1}",
                "articleId": article_id,
                "productId": str(m.get("productId") or f"p{idx + 1}"),
                "isApproved": False,
            }))
        except ValueError:
            continue
    return out[:MAX_MATCHES]


def analyze_with_llm(title: str, content: str, article_id: str) -> Tuple[List[Match], Optional[str]]:
    client = OpenAI(api_key=settings.openai_key())
    messages = [
        {"role": "system", "content": "Return JSON only. Do not include prose."},
        {"role": "user", "content": _build_prompt(title, content, article_id)},
    ]
    text, model = _chat_completion_with_retry(client, messages)
    if not text:
        return [], None
    return parse_llm_matches(text, article_id), model


def analyze_article(title: str, content: str, article_id: str = DEFAULT_ARTICLE_ID) -> Dict[str, Any]:
    """
    Returns {"matches": [Match], "insights": {...}, "model": str}.
    Match sources in order: LLM (when OPENAI_API_KEY is set), catalog keyword
    matching, then the token stub.
    """
    insights = build_insights(content)

    if llm_enabled():
        matches, model = analyze_with_llm(title, content, article_id)
        if matches:
            return {"matches": matches, "insights": insights, "model": model}
        logger.warning("analysis: LLM produced no matches, falling back to keyword matching")

    matches = generate_matches_from_products(
        insight_keywords(insights), content=content, title=title, article_id=article_id
    )
    if matches:
        return {"matches": matches, "insights": insights, "model": "keyword-match"}
    return {
        "matches": analyze_article_stub(content, article_id),
        "insights": insights,
        "model": "token-stub",
    }


# ---------- Approved matches ----------

def save_approved_matches(article_id: str, matches: List[Match]) -> int:
    """Persist approved matches (upsert by id). Returns the number saved."""
    approved = [m for m in matches if m.is_approved]
    with session_scope() as session:
        for m in approved:
            session.merge(ApprovedMatch(
                id=m.id,
                article_id=article_id,
                product_id=m.product_id,
                matched_keyword=m.matched_keyword,
                context_sentence=m.context_sentence,
                context_score=m.context_score,
                reason_label=m.reason_label,
            ))
        session.commit()
    logger.info(f"analysis: saved {len(approved)} approved matches for {article_id}")
    return len(approved)


def fetch_approved_matches(article_id: str) -> List[Match]:
    with session_scope() as session:
        rows = session.exec(
            select(ApprovedMatch).where(ApprovedMatch.article_id == article_id).order_by(ApprovedMatch.saved_at)
        ).all()
        return [
            Match(
                id=r.id,
                article_id=r.article_id,
                product_id=r.product_id,
                matched_keyword=r.matched_keyword,
                context_sentence=r.context_sentence,
                context_score=r.context_score,
                is_approved=True,
                reason_label=r.reason_label,
            )
            for r in rows
        ]
