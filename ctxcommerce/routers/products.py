# ctxcommerce/routers/products.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field

from ctxcommerce.errors import UpstreamError
from ctxcommerce.models import CamelModel, Product, ProductInput, ShopSort
from ctxcommerce.services import catalog
from ctxcommerce.utils import ratelimit, slog

router = APIRouter(tags=["products"])


# ---------- Response schemas ----------

class ProductPage(CamelModel):
    products: List[Product]
    source: Literal["naver", "fallback"]
    total: int
    display: int
    start: int


class CatalogView(CamelModel):
    products: List[Product]
    categories: List[str]
    sources: List[str]
    total: int


class ProductDetail(CamelModel):
    product: Product
    recommended: List[Product] = Field(default_factory=list)
    behavior_based: List[Product] = Field(default_factory=list)
    bundle_based: List[Product] = Field(default_factory=list)


def _upstream_http(e: UpstreamError) -> HTTPException:
    return HTTPException(status_code=e.status, detail=e.message)


# ---------- Search proxy ----------

@router.get("/products", response_model=ProductPage, dependencies=[Depends(ratelimit.enforce)])
def get_products(
    request: Request,
    q: str = "",
    display: int = 20,
    start: int = 1,
    sort: ShopSort = "sim",
) -> ProductPage:
    """
    Shopping search. Forwards to the Naver Shopping API when credentials are
    configured, otherwise searches the local catalog with the same contract.
    `display` is clamped to 1..40 and `start` to >= 1.
    """
    q = (q or "").strip()
    if not q:
        raise HTTPException(status_code=400, detail="q parameter is required")

    slog.set_context(request, qhash=slog.qhash(q), sort=sort)
    try:
        page = catalog.fetch_page(q, sort=sort, display=display, start=start)
    except UpstreamError as e:
        slog.set_context(request, upstream_status=e.status)
        raise _upstream_http(e)

    slog.set_context(request, source=page["source"], cache_hit=page["cached"])
    return ProductPage(
        products=page["products"],
        source=page["source"],
        total=page["total"],
        display=page["display"],
        start=page["start"],
    )


# ---------- Catalog admin ----------

@router.get("/products/catalog", response_model=CatalogView)
def get_catalog(
    search: str = "",
    category: str = "all",
    source: str = "all",
    status: str = "all",
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    sort_key: Literal["name", "price", "aiScore", "updatedAt"] = Query("name", alias="sortKey"),
    sort_dir: Literal["asc", "desc"] = Query("asc", alias="sortDir"),
) -> CatalogView:
    """Filtered/sorted view of the managed catalog plus its facets."""
    everything = catalog.PRODUCT_STORE.list()
    rows = catalog.filter_products(
        everything,
        search=search,
        category=category,
        source=source,
        status=status,
        min_price=min_price,
        max_price=max_price,
        sort_key=sort_key,
        sort_dir=sort_dir,
    )
    f = catalog.facets(everything)
    return CatalogView(products=rows, categories=f["categories"], sources=f["sources"], total=len(rows))


@router.post("/products", status_code=201)
def post_product(data: ProductInput) -> Dict[str, Any]:
    product = catalog.PRODUCT_STORE.create(data)
    return {"product": product.wire()}


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str) -> Product:
    product = catalog.PRODUCT_STORE.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product


@router.delete("/products/{product_id}")
def delete_product(product_id: str) -> Dict[str, bool]:
    if not catalog.PRODUCT_STORE.delete(product_id):
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return {"deleted": True}


@router.get("/products/{product_id}/detail", response_model=ProductDetail)
def get_product_detail(product_id: str, q: str = "니트") -> ProductDetail:
    """
    Product page: the product plus up to six related products for `q`,
    split into behaviour-based and bundle recommendations.
    """
    product = catalog.PRODUCT_STORE.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    try:
        related, _ = catalog.fetch_products(q)
    except UpstreamError as e:
        raise _upstream_http(e)

    recommended = [p for p in related if p.id != product.id][:6]
    behavior, bundle = catalog.split_recommendations(recommended)
    return ProductDetail(
        product=product,
        recommended=recommended,
        behavior_based=behavior,
        bundle_based=bundle,
    )
