# =============================================
# File: scripts/streamlit_app.py
# Purpose: Streamlit frontend for the contextual commerce demo
# =============================================

# -----------------------------------------------------------
# Contextual Commerce (Streamlit frontend)
#
# Talks to the FastAPI backend:
#   GET  /search?q=&sort=             unified search
#   GET  /products/catalog            admin catalog view
#   POST /analysis/article            article -> product matches
#   GET  /shortforms, /shortforms/{id}/active?t=
#   PUT  /consent/{session_id}        tracking consent
#   POST /events/log                  consent-gated events
#   GET  /analytics                   dashboard numbers
#
# How to run:
#   streamlit run scripts/streamlit_app.py
# -----------------------------------------------------------

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

import requests
import streamlit as st

st.set_page_config(
    page_title="Contextual Commerce",
    page_icon="🛍️",
    layout="wide",
)

# ---------- Small helpers ----------

def _sid() -> str:
    return "sess_" + uuid.uuid4().hex[:12]

def _api(path: str) -> str:
    return f"{st.session_state.api_base.rstrip('/')}{path}"

def api_get(path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    try:
        r = requests.get(_api(path), params=params, timeout=30)
    except requests.RequestException as e:
        st.error(f"Could not reach backend at {st.session_state.api_base}: {e}")
        return None
    if not r.ok:
        st.error(f"Backend returned {r.status_code}: {r.text}")
        return None
    return r.json()

def api_send(method: str, path: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        r = requests.request(method, _api(path), json=payload, timeout=60)
    except requests.RequestException as e:
        st.error(f"Could not reach backend at {st.session_state.api_base}: {e}")
        return None
    if not r.ok:
        st.error(f"Backend returned {r.status_code}: {r.text}")
        return None
    return r.json()

def track(event: str, **fields: Any) -> None:
    """Fire-and-forget event; the backend drops it without consent."""
    payload = {"sessionId": st.session_state.session_id, "event": event, "widgetVersion": "streamlit"}
    payload.update(fields)
    try:
        requests.post(_api("/events/log"), json=payload, timeout=5)
    except requests.RequestException:
        st.session_state.dropped_events += 1

def track_once(key: str, event: str, **fields: Any) -> None:
    """Like track(), but at most once per key per session (Streamlit reruns the script)."""
    if key in st.session_state.tracked:
        return
    st.session_state.tracked.add(key)
    track(event, **fields)

def won(price: Any) -> str:
    try:
        return f"₩{int(float(price)):,}"
    except (TypeError, ValueError):
        return "-"

# ---------- Session state ----------

if "session_id" not in st.session_state:
    st.session_state.session_id = _sid()

if "api_base" not in st.session_state:
    st.session_state.api_base = "http://localhost:8000"

if "dropped_events" not in st.session_state:
    st.session_state.dropped_events = 0

if "tracked" not in st.session_state:
    st.session_state.tracked = set()

if "matches" not in st.session_state:
    st.session_state.matches: List[Dict[str, Any]] = []

# ---------- Sidebar (settings + consent) ----------

st.sidebar.header("Settings")
api_base = st.sidebar.text_input("API base URL", st.session_state.api_base)
st.session_state.api_base = api_base.strip() or st.session_state.api_base
st.sidebar.caption(f"Session: `{st.session_state.session_id}`")

consent = api_get(f"/consent/{st.session_state.session_id}") or {"tracking": "unknown"}
allow = st.sidebar.toggle("Allow tracking", value=consent.get("tracking") == "granted")
wanted = "granted" if allow else "denied"
if consent.get("tracking") != wanted and (allow or consent.get("tracking") == "granted"):
    api_send("PUT", f"/consent/{st.session_state.session_id}", {"tracking": wanted})
st.sidebar.caption(f"Tracking: **{wanted}**")
track_once(f"widget_loaded:{wanted}", "widget_loaded", metadata={"channel": "web"})

st.title("Contextual Commerce")
tab_search, tab_catalog, tab_article, tab_shortform, tab_dash = st.tabs(
    ["Search", "Catalog", "Article analyzer", "Shortform", "Dashboard"]
)

# ---------- Search ----------

with tab_search:
    c1, c2 = st.columns([0.75, 0.25])
    with c1:
        q = st.text_input("Search", value="여름 셔츠", key="search_q")
    with c2:
        sort = st.selectbox("Sort", ["relevance", "popular", "ai"], key="search_sort")

    if q.strip():
        data = api_get("/search", {"q": q, "sort": sort})
        if data:
            counts = data.get("typeCounts", {})
            st.caption(
                f"articles {counts.get('article', 0)} · videos {counts.get('video', 0)} · products {counts.get('product', 0)}"
            )
            if data.get("productError"):
                st.warning(f"Product search failed: {data['productError']}")
            for item in data.get("content", []):
                st.markdown(f"**[{item['type']}] {item['title']}** · score {item['score']}")
                st.caption(item.get("snippet", ""))
            search_meta = {"placement": "search", "channel": "web"}
            cols = st.columns(4)
            for i, item in enumerate(data.get("products", [])[:12]):
                with cols[i % 4]:
                    if item.get("imageUrl"):
                        st.image(item["imageUrl"], use_container_width=True)
                    st.markdown(f"**{item['title']}**")
                    st.caption(item.get("snippet", ""))
                    track_once(f"imp:search:{item['id']}", "product_impression",
                               productId=item["id"], metadata=search_meta)
                    b1, b2 = st.columns(2)
                    if b1.button("View", key=f"view_{item['id']}"):
                        track("product_click", productId=item["id"], metadata=search_meta)
                    if b2.button("Add to cart", key=f"cart_{item['id']}"):
                        track("add_to_cart", productId=item["id"], metadata=search_meta)
                        st.toast("Added to cart")

# ---------- Catalog ----------

with tab_catalog:
    f1, f2, f3, f4 = st.columns(4)
    with f1:
        search = st.text_input("Filter", key="cat_search")
    with f2:
        status = st.selectbox("Status", ["all", "active", "paused", "draft"], key="cat_status")
    with f3:
        sort_key = st.selectbox("Sort by", ["name", "price", "aiScore", "updatedAt"], key="cat_sort")
    with f4:
        sort_dir = st.selectbox("Direction", ["asc", "desc"], key="cat_dir")

    view = api_get(
        "/products/catalog",
        {"search": search, "status": status, "sortKey": sort_key, "sortDir": sort_dir},
    )
    if view:
        st.caption(f"{view['total']} products · categories: {', '.join(view['categories']) or '-'}")
        st.dataframe(
            [
                {
                    "id": p["id"],
                    "name": p["name"],
                    "brand": p.get("brand", ""),
                    "price": won(p.get("price")),
                    "aiScore": p.get("aiScore"),
                    "status": p.get("status", ""),
                }
                for p in view["products"]
            ],
            use_container_width=True,
        )

    with st.expander("Add product"):
        name = st.text_input("Name", key="new_name")
        price = st.number_input("Price", min_value=0, step=1000, key="new_price")
        category = st.text_input("Category", key="new_category")
        if st.button("Create", key="new_create") and name.strip():
            created = api_send("POST", "/products", {"name": name, "price": price, "category": category or None})
            if created:
                st.success(f"Created {created['product']['id']}")

# ---------- Article analyzer ----------

with tab_article:
    if st.button("Load sample"):
        sample = api_get("/analysis/article/sample")
        if sample:
            st.session_state.article_title = sample["title"]
            st.session_state.article_body = sample["content"]

    title = st.text_input("Title", key="article_title")
    body = st.text_area("Content", height=220, key="article_body")

    if st.button("Analyze", type="primary") and body.strip():
        result = api_send("POST", "/analysis/article", {"title": title or "Untitled Article", "content": body})
        if result:
            st.session_state.matches = result.get("matches", [])
            st.session_state.insights = result.get("insights", {})
            st.caption(f"model: {result.get('model')}")

    insights = st.session_state.get("insights") or {}
    if insights:
        sentiment = insights.get("sentiment") or {}
        st.markdown(
            f"**Sentiment:** +{sentiment.get('positive', 0)} / -{sentiment.get('negative', 0)}"
            f" · {', '.join(sentiment.get('keywords', [])) or '-'}"
        )
        st.markdown(f"**Brands:** {', '.join(insights.get('brands', [])) or '-'}")
        st.markdown(f"**Features:** {', '.join(insights.get('features', [])) or '-'}")

    approved: List[Dict[str, Any]] = []
    for m in st.session_state.matches:
        label = f"{m['matchedKeyword']} → {m['productId']} ({m.get('contextScore', 0)})"
        if st.checkbox(label, value=m.get("isApproved", False), key=f"m_{m['id']}"):
            approved.append({**m, "isApproved": True})
        if m.get("contextSentence"):
            st.caption(m["contextSentence"])

    if st.session_state.matches and st.button("Save approved"):
        article_id = st.session_state.matches[0].get("articleId", "demo_article")
        saved = api_send("POST", "/matches", {"articleId": article_id, "matches": approved})
        if saved is not None:
            st.success(f"Saved {saved['saved']} matches")

# ---------- Shortform ----------

with tab_shortform:
    feed = api_get("/shortforms")
    if isinstance(feed, list) and feed:
        titles = {sf["title"]: sf for sf in feed}
        pick = st.selectbox("Clip", list(titles))
        clip = titles[pick]
        shortform_meta = {"placement": "shortform", "channel": "web"}
        st.video(clip["videoUrl"])
        track_once(f"video:{clip['id']}", "video_started", contentId=clip["id"], metadata=shortform_meta)
        t = st.slider("Playback time (s)", 0.0, 15.0, 0.0, 0.5)
        active = api_get(f"/shortforms/{clip['id']}/active", {"t": t})
        if active and active.get("product"):
            p = active["product"]
            st.markdown(f"**{active['timeLabel']}** · {p['name']} · {won(p.get('price'))}")
            track_once(f"marker:{clip['id']}:{p['id']}", "marker_visible", contentId=clip["id"], productId=p["id"],
                       location={"timecodeSeconds": t}, metadata=shortform_meta)
            if st.button("Add to cart", key=f"sf_cart_{clip['id']}_{p['id']}"):
                track("add_to_cart", contentId=clip["id"], productId=p["id"],
                      location={"timecodeSeconds": t}, metadata=shortform_meta)
                st.toast("Added to cart")
        else:
            st.caption("No product at this moment.")

# ---------- Dashboard ----------

with tab_dash:
    d1, d2, d3 = st.columns(3)
    with d1:
        rng = st.selectbox("Range", ["7d", "30d", "90d"], key="dash_range")
    with d2:
        channel = st.selectbox("Channel", ["all", "web", "app", "sns"], key="dash_channel")
    with d3:
        placement = st.selectbox("Placement", ["all", "article", "shortform", "search"], key="dash_placement")

    summary = api_get("/analytics", {"range": rng, "channel": channel, "placement": placement})
    if summary:
        k1, k2, k3, k4 = st.columns(4)
        k1.metric("Impressions", summary["impressions"])
        k2.metric("Clicks", summary["clicks"])
        k3.metric("CTR", f"{summary['ctr']}%")
        k4.metric("Est. revenue", won(summary["estimatedRevenue"]))
        series = summary.get("series") or []
        if series:
            st.line_chart({"impressions": [p["impressions"] for p in series], "clicks": [p["clicks"] for p in series]})
        else:
            st.caption("No events in this range.")

    if st.button("Flush events now"):
        flushed = api_send("POST", "/events/flush", {})
        if flushed is not None:
            st.info(f"Flushed: {flushed}")

# ---------- Footer ----------

st.caption(
    f"Backend API docs: {st.session_state.api_base.rstrip('/')}/docs · dropped events: {st.session_state.dropped_events}"
)
