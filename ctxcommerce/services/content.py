# =============================================
# File: ctxcommerce/services/content.py
# Purpose: Seed editorial articles for the content surfaces
# =============================================
from __future__ import annotations

from typing import Dict, List, Optional

from ctxcommerce.models import Article

_ARTICLES: List[Dict] = [
    {
        "id": "demo_article",
        "title": "여름 아웃핏 완성템 모음",
        "content": (
            "출근길에도 주말에도 어울리는 여름 셔츠 코디를 소개합니다. "
            "스트레치 원단의 슬림 셔츠는 오피스룩과 데일리룩 모두에 잘 어울리고, "
            "가벼운 러너 스니커즈를 매치하면 레트로한 분위기를 더할 수 있습니다. "
            "데일리 백팩 하나면 도심 출퇴근 준비가 끝납니다."
        ),
        "category": "패션",
        "author": "Contextual Studio 에디터",
        "hero_image": "https://picsum.photos/seed/summer/1200/600",
        "read_time_minutes": 4,
        "tags": ["셔츠", "코디", "데일리"],
    },
    {
        "id": "winter_layering",
        "title": "겨울 레이어드 가이드",
        "content": (
            "기온이 떨어지면 레이어드가 답입니다. 캐시미어 블렌드 니트 위에 "
            "경량 패딩 베스트를 겹치고, 울 블렌드 코트로 마무리하면 보온성과 "
            "실루엣을 모두 챙길 수 있습니다. 가죽 첼시 부츠는 포멀한 무드를 완성합니다."
        ),
        "category": "패션",
        "author": "Naver Select 큐레이터",
        "hero_image": "https://picsum.photos/seed/winter/1200/600",
        "video_loop_url": "https://interactive-examples.mdn.mozilla.net/media/cc0-videos/flower.mp4",
        "read_time_minutes": 5,
        "tags": ["겨울", "니트", "코트", "레이어드"],
    },
    {
        "id": "smartphone_review",
        "title": "플래그십 스마트폰 비교 리뷰",
        "content": (
            "애플이 공개한 아이폰 16 Pro는 AI 카메라와 밝기 2600nit을 제공한다. "
            "삼성전자 갤럭시 S24 울트라와 비교했을 때 AI 줌 개선과 저전력 모드가 강점으로 언급된다. "
            "리뷰어들은 선명하다, 빠르다 같은 긍정적 피드백을 남겼지만 가격이 비싸다, "
            "배터리가 아쉽다는 의견도 있다."
        ),
        "category": "테크",
        "author": "테크 데스크",
        "hero_image": "https://picsum.photos/seed/phone/1200/600",
        "read_time_minutes": 6,
        "tags": ["스마트폰", "리뷰", "AI"],
    },
]


def list_articles() -> List[Article]:
    return [Article(**a) for a in _ARTICLES]


def get_article(article_id: str) -> Optional[Article]:
    for a in _ARTICLES:
        if a["id"] == article_id:
            return Article(**a)
    return None
