# =============================================
# File: ctxcommerce/services/analytics.py
# Purpose: Event storage and dashboard aggregation (impressions, clicks, CTR)
# =============================================
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlmodel import select

from ctxcommerce.db.models import EventRecord, utcnow
from ctxcommerce.db.repo import session_scope
from ctxcommerce.models import AnalyticsData, QueuedEvent
from ctxcommerce.services.catalog import PRODUCT_STORE
from ctxcommerce.utils.metrics import incr

RANGES = {"7d": 7, "30d": 30, "90d": 90}
IMPRESSION_EVENTS = {"product_impression", "marker_visible"}
CLICK_EVENTS = {"product_click"}
CART_EVENTS = {"add_to_cart"}


def _utc(ts: dt.datetime) -> dt.datetime:
    """Naive values are taken as UTC (SQLite drops the offset on read)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc)


def _parse_ts(value: Optional[str]) -> dt.datetime:
    """ISO-8601 -> aware UTC datetime; unparsable values become 'now'."""
    if value:
        try:
            return _utc(dt.datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            pass
    return utcnow()


def _meta_str(meta: Dict[str, Any], key: str) -> Optional[str]:
    value = meta.get(key)
    return str(value) if value is not None else None


def store_events(events: Iterable[Union[QueuedEvent, Dict[str, Any]]]) -> int:
    """Persist a batch. Accepts QueuedEvent models or camelCase dicts."""
    rows: List[EventRecord] = []
    for ev in events:
        model = ev if isinstance(ev, QueuedEvent) else QueuedEvent.model_validate(ev)
        meta = model.metadata or {}
        rows.append(EventRecord(
            event=model.event,
            session_id=model.session_id,
            content_id=model.content_id,
            product_id=model.product_id,
            occurred_at=_parse_ts(model.occurred_at),
            channel=_meta_str(meta, "channel"),
            placement=_meta_str(meta, "placement"),
            payload=json.dumps(model.wire(), ensure_ascii=False),
        ))
    if not rows:
        return 0
    with session_scope() as session:
        session.add_all(rows)
        session.commit()
    incr("events_ingested_total", len(rows))
    return len(rows)


def list_events(since: Optional[dt.datetime] = None) -> List[EventRecord]:
    with session_scope() as session:
        stmt = select(EventRecord)
        if since is not None:
            stmt = stmt.where(EventRecord.occurred_at >= _utc(since))
        return list(session.exec(stmt.order_by(EventRecord.occurred_at)).all())


def _ctr(clicks: int, impressions: int) -> float:
    return round(clicks / impressions * 100, 1) if impressions else 0.0


def summarize(
    range_: str = "7d",
    channel: str = "all",
    placement: str = "all",
    now: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    """
    Dashboard numbers for the last 7/30/90 days.
    `channel` / `placement` filter on the event metadata; "all" disables them.
    """
    days = RANGES.get(range_, 7)
    now = _utc(now) if now is not None else utcnow()
    since = now - dt.timedelta(days=days)

    events = [
        e for e in list_events(since)
        if _utc(e.occurred_at) <= now
        and (channel == "all" or e.channel == channel)
        and (placement == "all" or e.placement == placement)
    ]

    daily: Dict[str, Dict[str, int]] = {}
    impressions = clicks = carts = 0
    revenue = 0.0
    for e in events:
        day = daily.setdefault(_utc(e.occurred_at).date().isoformat(), {"impressions": 0, "clicks": 0})
        if e.event in IMPRESSION_EVENTS:
            impressions += 1
            day["impressions"] += 1
        elif e.event in CLICK_EVENTS:
            clicks += 1
            day["clicks"] += 1
        elif e.event in CART_EVENTS:
            carts += 1
            product = PRODUCT_STORE.get(e.product_id) if e.product_id else None
            if product and product.margin:
                revenue += product.margin

    series = [
        AnalyticsData(date=d, impressions=v["impressions"], clicks=v["clicks"], ctr=_ctr(v["clicks"], v["impressions"]))
        for d, v in sorted(daily.items())
    ]
    return {
        "range": range_ if range_ in RANGES else "7d",
        "channel": channel,
        "placement": placement,
        "impressions": impressions,
        "clicks": clicks,
        "ctr": _ctr(clicks, impressions),
        "add_to_cart": carts,
        "estimated_revenue": revenue,
        "events": len(events),
        "series": series,
    }
