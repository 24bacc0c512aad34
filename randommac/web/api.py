from __future__ import annotations

import os
import time
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from randommac.config import default_database_path, load_config
from randommac.engine import MacEngine
from randommac.errors import (
    CorruptError,
    EmptyRegistryError,
    FormatError,
    NoMatchError,
    NotFoundError,
    PersistenceError,
    RandomMacError,
)
from randommac.log import get_logger
from randommac.models import GenerateRequest, GenerateResult, RecordOut
from randommac.oui import FORMATS
from randommac.storage import OuiStore

logger = get_logger("api")

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(title="random-mac API", docs_url="/docs", redoc_url="/redoc")

_start_time = time.monotonic()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    elapsed = (time.monotonic() - start) * 1000
    logger.info("%s %s %d (%.1fms)", request.method, request.url.path,
                response.status_code, elapsed)
    return response

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

_config = load_config()
_api_key = _config.get("web", {}).get("api_key")


async def verify_api_key(
    authorization: Optional[str] = Header(default=None),
    token: Optional[str] = Query(default=None),
):
    if not _api_key:
        return
    bearer_token = None
    if authorization and authorization.startswith("Bearer "):
        bearer_token = authorization[7:]
    actual = bearer_token or token
    if not actual or actual != _api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

_STATUS = {
    NotFoundError: 404,
    NoMatchError: 404,
    FormatError: 400,
    EmptyRegistryError: 400,
    CorruptError: 500,
    PersistenceError: 500,
}


def _database_path() -> str:
    return (
        os.environ.get("RANDOM_MAC_DATABASE")
        or _config.get("web", {}).get("database")
        or str(default_database_path())
    )


engine = MacEngine(OuiStore(_database_path()))


def _http_error(exc: RandomMacError) -> HTTPException:
    status = next((code for cls, code in _STATUS.items() if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("request failed: %s", exc)
    return HTTPException(status_code=status, detail=str(exc))

# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/api/v1/health")
def health():
    return {
        "status": "ok",
        "database": engine.store.exists(),
        "uptime_seconds": int(time.monotonic() - _start_time),
    }


@app.get("/api/v1/stats", dependencies=[Depends(verify_api_key)])
def get_stats():
    try:
        return engine.store.stats()
    except RandomMacError as exc:
        raise _http_error(exc)


@app.get("/api/v1/vendors", response_model=list[RecordOut], dependencies=[Depends(verify_api_key)])
def search_vendors(q: str, limit: int = Query(default=100, ge=0)):
    try:
        matches = engine.load().find_by_vendor_substring(q)
    except RandomMacError as exc:
        raise _http_error(exc)
    if limit:
        matches = matches[:limit]
    return [RecordOut.from_record(record) for record in matches]


@app.get("/api/v1/lookup/{mac}", response_model=RecordOut, dependencies=[Depends(verify_api_key)])
def lookup(mac: str):
    try:
        record = engine.lookup(mac)
    except RandomMacError as exc:
        raise _http_error(exc)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No registered vendor found for {mac}")
    return RecordOut.from_record(record)


@app.post("/api/v1/generate", response_model=GenerateResult, dependencies=[Depends(verify_api_key)])
def generate(request: GenerateRequest):
    try:
        generated = engine.generate(
            vendor=request.vendor,
            current_mac=request.current_mac,
            prefix=request.prefix,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RandomMacError as exc:
        raise _http_error(exc)
    return GenerateResult(
        mac=str(generated.mac),
        record=RecordOut.from_record(generated.record),
        candidates=generated.candidates,
    )


@app.post("/api/v1/update", dependencies=[Depends(verify_api_key)])
async def update(request: Request, format: Optional[str] = Query(default=None)):
    if format is not None and format not in FORMATS:
        raise HTTPException(status_code=400, detail=f"unknown format {format!r}")
    raw = await request.body()
    try:
        summary = await run_in_threadpool(engine.update, raw, fmt=format, source="api upload")
    except RandomMacError as exc:
        raise _http_error(exc)
    return {"records": summary.records, "rejected": summary.rejected, "format": summary.fmt}
