"""FastAPI application entrypoint for the inbox read API."""
from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable, List, Optional, TypeVar

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Response, status
from fastapi.middleware.cors import CORSMiddleware

from . import aggregation, schemas
from .config import Settings, current_date, get_settings
from .database import MessageStore, QueryFailure, StoreUnreachable

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = FastAPI(
    title="Message Inbox Read API",
    description="Read-only views over the message log: conversations, threads, search and usage statistics.",
    version="0.1.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_methods=["GET"],
    allow_headers=["*"],
)

router = APIRouter(prefix="/api")

_store: Optional[MessageStore] = None
_store_lock = threading.Lock()


class InvalidInput(Exception):
    """Raised when a required request parameter is missing or blank."""


def get_store() -> MessageStore:
    global _store
    store = _store
    if store is not None:
        return store
    with _store_lock:
        if _store is None:
            _store = MessageStore.from_settings(get_settings())
        return _store


def get_today(settings: Settings = Depends(get_settings)) -> date:
    return current_date(settings)


def _run(store: MessageStore, operation: Callable[..., T], *args) -> T:
    try:
        with store.session() as db:
            return operation(db, *args)
    except StoreUnreachable as exc:
        logger.error("Message store unreachable during %s: %s", operation.__name__, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Message store unavailable: {exc}",
        ) from exc
    except QueryFailure as exc:
        logger.error("Query failed during %s: %s", operation.__name__, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def _require_user_id(user_id: Optional[str]) -> str:
    if user_id is None or not user_id.strip():
        raise InvalidInput("userId is required")
    return user_id


@router.get("/conversations", response_model=List[schemas.ConversationSummary])
def list_conversations(store: MessageStore = Depends(get_store)) -> List[schemas.ConversationSummary]:
    return _run(store, aggregation.list_conversations)


@router.get("/conversations/{user_id}", response_model=List[schemas.MessageOut])
def get_thread(user_id: str, store: MessageStore = Depends(get_store)) -> List[schemas.MessageOut]:
    try:
        user_id = _require_user_id(user_id)
    except InvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _run(store, aggregation.get_thread, user_id)


@router.get("/search", response_model=List[schemas.MessageOut])
def search(
    q: Optional[str] = Query(None, description="Case-insensitive text to look for"),
    store: MessageStore = Depends(get_store),
) -> List[schemas.MessageOut]:
    if not q:
        return []
    return _run(store, aggregation.search_messages, q)


@router.get("/stats", response_model=schemas.UsageStats)
def stats(
    store: MessageStore = Depends(get_store),
    today: date = Depends(get_today),
) -> schemas.UsageStats:
    return _run(store, aggregation.get_stats, today)


@router.get("/stats/weekly", response_model=List[schemas.WeeklyBucket])
def weekly_stats(
    store: MessageStore = Depends(get_store),
    today: date = Depends(get_today),
) -> List[schemas.WeeklyBucket]:
    return _run(store, aggregation.get_weekly_stats, today)


@router.get("/health", response_model=schemas.HealthOut, response_model_exclude_none=True)
def health(response: Response, store: MessageStore = Depends(get_store)) -> schemas.HealthOut:
    try:
        store.ping()
    except (StoreUnreachable, QueryFailure) as exc:
        logger.error("Health check failed: %s", exc)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return schemas.HealthOut(reachable=False, detail=str(exc))
    return schemas.HealthOut(reachable=True)


app.include_router(router)


@app.on_event("startup")
def open_message_store() -> None:
    store = get_store()
    try:
        store.ping()
    except (StoreUnreachable, QueryFailure) as exc:
        # Requests keep failing with 503 until the store comes back.
        logger.error("Message store connection failed: %s", exc)
    else:
        logger.info("Message store connection established")


@app.on_event("shutdown")
def close_message_store() -> None:
    global _store
    with _store_lock:
        store = _store
        _store = None
    if store is not None:
        store.dispose()


def reset_application_state() -> None:
    """Drop the pooled store handle. Intended for use in tests."""

    close_message_store()


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Serving inbox API on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
