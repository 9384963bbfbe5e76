# =============================================
# File: ctxcommerce/utils/text.py
# Purpose: Text helpers shared by the proxy and the article heuristics
# =============================================
from __future__ import annotations
import re
from typing import Iterable, List

_TAG_RE = re.compile(r"<[^>]+>")

def strip_html(text: str | None) -> str:
    """Drop tags and decode the two entities the shopping API emits."""
    if not text:
        return ""
    return _TAG_RE.sub("", text).replace("&quot;", '"').replace("&amp;", "&")

def tokens(text: str, min_len: int = 2) -> List[str]:
    """Whitespace tokens with tags replaced by spaces; shorter tokens dropped."""
    cleaned = re.sub(r"<[^>]*>", " ", text or "")
    return [t for t in cleaned.split() if len(t) >= min_len]

def unique(items: Iterable[str]) -> List[str]:
    """Order-preserving dedupe."""
    seen = set()
    out: List[str] = []
    for it in items:
        if it in seen:
            continue
        seen.add(it)
        out.append(it)
    return out

def contains_any(haystack: str, needles: Iterable[str], case_sensitive: bool = False) -> List[str]:
    """Needles found in haystack, in needle order."""
    if case_sensitive:
        return [n for n in needles if n in haystack]
    low = haystack.lower()
    return [n for n in needles if n.lower() in low]
