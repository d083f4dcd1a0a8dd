"""
Query Service — read-only FastAPI app over one loaded QueryIndex.

The index is handed to create_app() after a successful decrypt and stored on
app.state; handlers receive it through the get_index dependency. Handlers
never see the database password or key.

Start:
  accinfo serve /path/to/accounts.aidb
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from accinfo import APP_NAME, __version__
from accinfo.api.middleware import CorrelationMiddleware, RateLimitMiddleware, TokenAuthMiddleware
from accinfo.api.models import GroupList, PingResponse, RecordList, RecordOut
from accinfo.config import Config, get_config
from accinfo.db.index import QueryIndex
from accinfo.errors import InvalidParameters, QueryError

logger = logging.getLogger(__name__)

MAX_QUERY_LEN = 256
MAX_GROUP_DEPTH = 64

router = APIRouter(prefix="/api", tags=["records"])


def get_index(request: Request) -> QueryIndex:
    """The shared, immutable index loaded at startup."""
    return request.app.state.index


def _check_text(name: str, value: str) -> str:
    if len(value) > MAX_QUERY_LEN:
        raise InvalidParameters(f"{name} longer than {MAX_QUERY_LEN} characters")
    return value


# ─── Endpoints ───────────────────────────────────────────────────────────


@router.get("/ping", response_model=PingResponse)
async def ping(reply: str | None = Query(None), index: QueryIndex = Depends(get_index)):
    """Liveness check; echoes ``reply`` (default "pong")."""
    return PingResponse(
        reply=_check_text("reply", reply) if reply else "pong",
        server=f"{APP_NAME}/{__version__}",
        now=datetime.now(UTC),
        records=len(index),
    )


@router.get("/records", response_model=RecordList)
async def api_find_by_title(
    title_prefix: str = Query(..., description="Case-insensitive title prefix"),
    index: QueryIndex = Depends(get_index),
):
    return RecordList.of(index.find_by_title_prefix(_check_text("title_prefix", title_prefix)))


@router.get("/records/{record_id}", response_model=RecordOut)
async def api_get_record(record_id: int, index: QueryIndex = Depends(get_index)):
    if record_id < 0:
        raise InvalidParameters("record id must be non-negative")
    item = index.get(record_id)
    if item is None:
        return JSONResponse({"error": "record not found"}, status_code=404)
    return RecordOut.from_indexed(item)


@router.get("/groups", response_model=GroupList)
async def api_list_groups(index: QueryIndex = Depends(get_index)):
    groups = [list(g) for g in index.groups()]
    return GroupList(total=len(groups), groups=groups)


@router.get("/groups/records", response_model=RecordList)
async def api_find_by_group(
    path: list[str] = Query(default=[], description="Group path, one segment per parameter"),
    exact: bool = Query(False),
    index: QueryIndex = Depends(get_index),
):
    if not path:
        raise InvalidParameters("at least one path segment is required")
    if len(path) > MAX_GROUP_DEPTH:
        raise InvalidParameters(f"group path deeper than {MAX_GROUP_DEPTH} segments")
    for segment in path:
        _check_text("path", segment)
    return RecordList.of(index.find_by_group(path, exact=exact))


@router.get("/search", response_model=RecordList)
async def api_search(q: str = Query(""), index: QueryIndex = Depends(get_index)):
    """Substring search over title, url and notes; empty ``q`` lists everything."""
    return RecordList.of(index.search(_check_text("q", q)))


@router.get("/users/{username}", response_model=RecordList)
async def api_find_by_username(username: str, index: QueryIndex = Depends(get_index)):
    return RecordList.of(index.find_by_username(_check_text("username", username)))


# ─── Error handling ──────────────────────────────────────────────────────


async def _query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=400)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return JSONResponse({"error": f"invalid parameters: {detail}"}, status_code=400)


# ─── App factory ─────────────────────────────────────────────────────────


def create_app(index: QueryIndex, config: Config | None = None) -> FastAPI:
    """Build the API around an already-decrypted index."""
    cfg = config or get_config()

    app = FastAPI(
        title="accinfo",
        description="Read-only account lookups over an encrypted database.",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.index = index

    app.include_router(router)
    app.add_exception_handler(QueryError, _query_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # Last added runs first: correlation → rate limit → auth → handler
    app.add_middleware(TokenAuthMiddleware, token=cfg.api_token)
    app.add_middleware(RateLimitMiddleware, limit=cfg.rate_limit)
    app.add_middleware(CorrelationMiddleware)

    logger.info(
        "Query service ready: %d records, auth %s, rate limit %s",
        len(index),
        "on" if cfg.api_token else "off",
        cfg.rate_limit or "off",
    )
    return app
