from contextlib import asynccontextmanager
from typing import Any, Iterator, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

# ── local modules ───────────────────────────────────────────────────
from .config import Settings
from .db import Database
from .errors import NotFound, StoreFailure, ValidationError
from .migrate import MIGRATIONS_DIR, run_migrations
from .occurrences import list_occurrences
from .schemas import EventOut, HealthOut, OccurrenceOut
from .store import EventStore
from .timestamps import format_timestamp, utcnow
from .validation import (
    is_valid_timezone,
    issue_from_error,
    parse_event_input,
    parse_time_range,
)
# ────────────────────────────────────────────────────────────────────

router = APIRouter(prefix="/api")


def get_store(request: Request) -> Iterator[EventStore]:
    """
    FastAPI dependency that yields a store bound to a fresh session
    and guarantees the session is closed afterwards.
    """
    database: Database = request.app.state.database
    settings: Settings = request.app.state.settings
    with database.session() as session:
        yield EventStore(session, default_timezone=settings.default_timezone)


# ───────────────────────── Health ───────────────────────────────────
@router.get("/health", response_model=HealthOut)
def health_check():
    return {"ok": True, "time": format_timestamp(utcnow())}


# ───────────────────────── Event CRUD ───────────────────────────────
@router.get("/events", response_model=list[EventOut])
def list_events(store: EventStore = Depends(get_store)):
    return store.list()


@router.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: str, store: EventStore = Depends(get_store)):
    return store.get(event_id)


@router.post("/events", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: Any = Body(default=None), store: EventStore = Depends(get_store)):
    data = parse_event_input(payload)
    return store.create(data)


@router.put("/events/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: Any = Body(default=None),
    store: EventStore = Depends(get_store),
):
    data = parse_event_input(payload)
    return store.update(event_id, data)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, store: EventStore = Depends(get_store)):
    store.delete(event_id)
    return


# ───────────────────────── Occurrences ──────────────────────────────
@router.get("/occurrences", response_model=list[OccurrenceOut])
def get_occurrences(
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = Query(default=None),
    store: EventStore = Depends(get_store),
):
    window = parse_time_range(from_, to)
    return list_occurrences(store, window)


# ───────────────────────── Error mapping ────────────────────────────
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_dict())


async def _request_validation_error(request: Request, exc: RequestValidationError):
    # Malformed JSON and the like; reported in the same shape as our own checks
    issues = [issue_from_error(err) for err in exc.errors()]
    return await _validation_error(request, ValidationError(issues))


async def _not_found(request: Request, exc: NotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": f"{exc.resource} not found"},
    )


async def _store_failure(request: Request, exc: StoreFailure):
    # Already logged with its cause where it was raised
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


async def _unhandled(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ───────────────────────── App factory ──────────────────────────────
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    if not is_valid_timezone(settings.default_timezone):
        raise ValueError(f"DEFAULT_TIMEZONE is not a known timezone: {settings.default_timezone!r}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # startup: migrations must succeed before any request is served
        database = Database(settings.db_url, echo=settings.sql_echo).open()
        try:
            applied = run_migrations(database.engine, MIGRATIONS_DIR)
            logger.info("Database ready ({} migration(s) applied)", len(applied))
            app.state.database = database
            yield
        finally:
            # shutdown
            database.close()

    app = FastAPI(title="Calendar API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )

    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(NotFound, _not_found)
    app.add_exception_handler(StoreFailure, _store_failure)
    app.add_exception_handler(Exception, _unhandled)

    app.include_router(router)
    return app
