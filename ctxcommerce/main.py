from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from ctxcommerce.db.repo import init_db
from ctxcommerce.routers import analysis, content, dashboard, datalab, events, metrics, products
from ctxcommerce.services.events import get_event_logger
from ctxcommerce.utils import settings, slog
from ctxcommerce.utils.logging import logger
from ctxcommerce.utils.metrics import record_request, record_endpoint


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    ev = get_event_logger()
    ev.start()
    logger.info("ctxcommerce started")
    try:
        yield
    finally:
        ev.stop()
        logger.info("ctxcommerce stopped")


app = FastAPI(
    title="Contextual Commerce API",
    description="Naver Shopping proxy, article/video product matching and consent-gated event analytics.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_allow_origin().split(",") if o.strip()],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = slog.new_request_id()
    client_ip = request.client.host if request.client else None
    try:
        response = await call_next(request)
    except Exception as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        ctx = getattr(request.state, "log_context", {})
        slog.log_event(
            "request.error",
            request_id=req_id,
            path=str(request.url.path),
            method=request.method,
            latency_ms=latency_ms,
            client_ip=client_ip,
            error=str(e),
            **(ctx or {}),
        )
        raise
    latency_ms = int((time.perf_counter() - start) * 1000)
    ctx = getattr(request.state, "log_context", {}) or {}
    ctx.setdefault("rate_limited", response.status_code == 429)
    slog.finalize_request_log(
        request_id=req_id,
        method=request.method,
        path=str(request.url.path),
        status=response.status_code,
        latency_ms=latency_ms,
        client_ip=client_ip,
        ctx=ctx,
    )
    record_request(latency_ms=latency_ms)
    record_endpoint(method=request.method, path=str(request.url.path), latency_ms=latency_ms)
    response.headers["X-Request-ID"] = req_id
    return response


@app.get("/health")
def health():
    return {
        "status": "ok",
        "naver": settings.naver_credentials() is not None,
        "llm": bool(settings.openai_key()),
    }


@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs")


app.include_router(products.router)
app.include_router(datalab.router)
app.include_router(analysis.router)
app.include_router(content.router)
app.include_router(events.router)
app.include_router(metrics.router)
app.include_router(dashboard.router)
