# =============================================
# File: ctxcommerce/services/naver.py
# Purpose: Thin client for the Naver Shopping search and DataLab APIs
# =============================================
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from ctxcommerce.errors import NotConfiguredError, UpstreamError
from ctxcommerce.models import Product
from ctxcommerce.utils import settings, slog
from ctxcommerce.utils.logging import logger
from ctxcommerce.utils.metrics import record_upstream_error
from ctxcommerce.utils.text import strip_html
from ctxcommerce.utils.timing import timer

BASE_URL = "https://openapi.naver.com"
SHOP_PATH = "/v1/search/shop.json"
TREND_PATH = "/v1/datalab/search"
INSIGHT_PATH = "/v1/datalab/shopping/categories"

DEFAULT_DISPLAY = 20
MAX_DISPLAY = 40
DEFAULT_DESCRIPTION = "네이버 쇼핑 상품"


def clamp_display(display: Optional[int]) -> int:
    return min(max(display or DEFAULT_DISPLAY, 1), MAX_DISPLAY)


def clamp_start(start: Optional[int]) -> int:
    return max(start or 1, 1)


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def map_item(item: Dict[str, Any]) -> Product:
    """Shopping API item -> Product."""
    return Product(
        id=str(item.get("productId")),
        name=strip_html(item.get("title") or ""),
        description=item.get("mallName") or item.get("maker") or DEFAULT_DESCRIPTION,
        price=_to_int(item.get("lprice")),
        image_url=item.get("image") or "",
        link_url=item.get("link") or "",
        category=item.get("category1") or None,
    )


class NaverClient:
    """
    Forwards requests with the application's client id/secret.
    Non-2xx answers raise UpstreamError carrying the upstream status; network
    failures raise UpstreamError(502).
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = 5.0,
        base_url: str = BASE_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "X-Naver-Client-Id": client_id,
            "X-Naver-Client-Secret": client_secret,
        })

    def _call(self, method: str, path: str, label: str, **kwargs) -> Dict[str, Any]:
        url = f"{self._base}{path}"
        with timer() as elapsed:
            try:
                resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
            except requests.RequestException as e:
                record_upstream_error()
                logger.warning(f"{label}: request to {path} failed: {e}")
                raise UpstreamError(502, f"Failed to reach Naver API: {e}") from e
        slog.log_event("upstream.call", path=path, status=resp.status_code, latency_ms=elapsed())

        if not resp.ok:
            record_upstream_error()
            logger.warning(f"{label}: {path} returned {resp.status_code}")
            raise UpstreamError(resp.status_code, f"{label}: {resp.text}")
        try:
            return resp.json()
        except ValueError as e:
            record_upstream_error()
            raise UpstreamError(502, f"{label}: invalid JSON from upstream") from e

    def search_shop(self, query: str, display: int = DEFAULT_DISPLAY, start: int = 1, sort: str = "sim") -> Dict[str, Any]:
        """
        Returns {"products": [...], "total": int, "display": int, "start": int}.
        """
        display = clamp_display(display)
        start = clamp_start(start)
        data = self._call(
            "GET",
            SHOP_PATH,
            "Naver API error",
            params={"query": query, "display": display, "start": start, "sort": sort},
        )
        items = data.get("items")
        products: List[Product] = [map_item(it) for it in items] if isinstance(items, list) else []
        total = data.get("total")
        return {
            "products": products,
            "total": total if total is not None else len(products),
            "display": display,
            "start": start,
        }

    def search_trend(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", TREND_PATH, "Naver Datalab error", json=body)

    def shopping_insight(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", INSIGHT_PATH, "Naver Shopping Insight error", json=body)


def get_client() -> Optional[NaverClient]:
    """Client for the configured credentials, or None when unset."""
    creds = settings.naver_credentials()
    if not creds:
        return None
    return NaverClient(creds[0], creds[1], timeout=settings.naver_timeout())


def require_client() -> NaverClient:
    client = get_client()
    if client is None:
        raise NotConfiguredError("NAVER_CLIENT_ID and NAVER_CLIENT_SECRET must be set in env")
    return client
