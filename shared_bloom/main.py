# shared_bloom/main.py
import asyncio
import logging
import time
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from .bloom import AsyncBloomFilter
from .config import settings
from .errors import BloomStoreError
from .hashing import get_encoder
from .metrics import (
    BLOOM_ERRORS_TOTAL,
    BLOOM_OPS_TOTAL,
    BLOOM_STORE_LATENCY_SECONDS,
    HTTP_REQUEST_LATENCY_SECONDS,
    HTTP_REQUESTS_TOTAL,
)
from .models import AddRequest, AddResponse, BitProbe, ExistResponse, InspectResponse
from .store import AsyncRedisBitStore

logger = logging.getLogger("shared_bloom.api")

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Bloom filter over a shared Redis bitmap.",
)

# Runtime handles
rds: Optional[redis.Redis] = None
bloom: Optional[AsyncBloomFilter] = None


def setup_logging() -> None:
    log_level = settings.log_level.upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
    logging.getLogger("shared_bloom").setLevel(log_level)


def bitmap_key(key: str) -> str:
    return f"{settings.bloom_key_prefix}{key}"


# -------------------------
# Startup / Shutdown
# -------------------------
@app.on_event("startup")
async def startup():
    global rds, bloom
    setup_logging()
    rds = redis.from_url(settings.redis_url)
    store = AsyncRedisBitStore(rds, mode=settings.bloom_atomic_mode)
    bloom = AsyncBloomFilter(
        m=settings.bloom_m,
        k=settings.bloom_k,
        store=store,
        encode=get_encoder(settings.bloom_hash),
    )
    logger.info(
        "Bloom filter ready m=%d k=%d hash=%s mode=%s",
        settings.bloom_m, settings.bloom_k, settings.bloom_hash, settings.bloom_atomic_mode,
    )


@app.on_event("shutdown")
async def shutdown():
    global rds
    if rds:
        await rds.close()


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    method = request.method
    start = time.perf_counter()
    try:
        response = await call_next(request)
        return response
    finally:
        elapsed = time.perf_counter() - start
        # route template, so every bitmap key doesn't become its own label
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        HTTP_REQUESTS_TOTAL.labels(method=method, path=path).inc()
        HTTP_REQUEST_LATENCY_SECONDS.labels(path=path).observe(elapsed)


def _require_bloom() -> AsyncBloomFilter:
    if not bloom:
        raise HTTPException(status_code=503, detail="Service not ready")
    return bloom


def _require_utf8(*values: str) -> None:
    # responses echo key and value, which must encode as UTF-8
    for v in values:
        try:
            v.encode("utf-8")
        except UnicodeEncodeError:
            raise HTTPException(status_code=422, detail="key and value must be valid UTF-8 text")


async def _run(op: str, coro):
    start = time.perf_counter()
    try:
        return await asyncio.wait_for(coro, timeout=settings.request_timeout_seconds)
    except asyncio.TimeoutError:
        BLOOM_ERRORS_TOTAL.labels(type="Timeout").inc()
        logger.warning("Bloom %s timed out after %.2fs", op, settings.request_timeout_seconds)
        raise HTTPException(status_code=504, detail="Bitmap store timed out")
    except BloomStoreError as exc:
        BLOOM_ERRORS_TOTAL.labels(type=type(exc).__name__).inc()
        logger.warning("Bloom %s failed: %s", op, exc)
        raise HTTPException(status_code=502, detail=f"Bitmap store error: {exc}")
    finally:
        BLOOM_STORE_LATENCY_SECONDS.labels(op=op).observe(time.perf_counter() - start)


# -------------------------
# Routes
# -------------------------
@app.get("/health", tags=["internal"])
async def health():
    return {"ok": True}


@app.get("/metrics", response_class=PlainTextResponse, tags=["internal"])
def metrics():
    # Prometheus scraping endpoint
    return PlainTextResponse(generate_latest().decode("utf-8"))


@app.post("/bloom/{key}", response_model=AddResponse)
async def add_value(key: str, req: AddRequest):
    """
    Record a value in the filter stored under `key`.
    All k bits are written by one atomic operation.
    """
    bf = _require_bloom()
    _require_utf8(key, req.value)
    await _run("set", bf.set(bitmap_key(key), req.value))
    BLOOM_OPS_TOTAL.labels(op="set", outcome="added").inc()
    return AddResponse(key=key, value=req.value)


@app.get("/bloom/{key}/exists", response_model=ExistResponse)
async def exists(key: str, value: str = Query(..., min_length=1, max_length=4096)):
    """
    Check whether `value` may have been added under `key`.
    False is definite, True may be a false positive.
    """
    bf = _require_bloom()
    _require_utf8(key, value)
    present = await _run("exist", bf.exist(bitmap_key(key), value))
    BLOOM_OPS_TOTAL.labels(op="exist", outcome="present" if present else "absent").inc()
    return ExistResponse(key=key, value=value, exists=present)


@app.get("/bloom/{key}/inspect", response_model=InspectResponse)
async def inspect(key: str, value: str = Query(..., min_length=1, max_length=4096)):
    """
    Show the offsets derived for `value` and the current bit at each (for debugging).
    """
    bf = _require_bloom()
    _require_utf8(key, value)
    probes = await _run("inspect", bf.inspect(bitmap_key(key), value))
    return InspectResponse(
        key=key,
        value=value,
        m=bf.m,
        k=bf.k,
        bits=[BitProbe(offset=o, bit=b) for o, b in probes],
    )
