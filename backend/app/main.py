from contextlib import asynccontextmanager
from typing import Any, Optional
import logging
import sqlite3

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from backend.analytics.bootstrap import ratings_bootstrap
from backend.analytics.dashboard import get_dashboard_summary
from backend.analytics.events import recent_events, view_counts
from backend.analytics.ingest import record_event, submit_rating
from backend.analytics.ratings import get_rating_summary
from backend.app.config import settings
from backend.app.db import connect, get_conn, init_db, to_storage_error
from backend.app.errors import AnalyticsError, InternalError, InvalidInput
from backend.app.identity import current_user_id
from backend.app.logging_setup import setup_logging

setup_logging(settings.log_level, settings.analytics_log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ensure the collaborator tables exist; analytics tables appear on first write
    conn = connect()
    init_db(conn)
    conn.close()
    logger.info("%s ready (env=%s)", settings.app_name, settings.app_env)

    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan,
)

if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Error mapping
def _error_response(exc: AnalyticsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request failed: %r", exc, exc_info=exc.__cause__ or exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(AnalyticsError)
async def analytics_error_handler(request: Request, exc: AnalyticsError):
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "invalid request") if errors else "invalid request"
    return _error_response(InvalidInput(str(detail)))


@app.exception_handler(sqlite3.Error)
async def storage_error_handler(request: Request, exc: sqlite3.Error):
    return _error_response(to_storage_error(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    return _error_response(InternalError("Internal server error", cause=exc))


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env}


@app.get("/")
def root():
    return {"message": "Engagement analytics API is running", "docs": "/docs", "health": "/health"}


# Debug endpoints
@app.get("/debug/events")
def debug_events(
    movie_id: Optional[str] = Query(default=None),
    limit: int = Query(20, ge=1, le=200),
    conn: sqlite3.Connection = Depends(get_conn),
):
    return recent_events(conn, movie_id=movie_id, limit=limit)


# Event ingestion
class TrackEventRequest(BaseModel):
    # loose types on purpose: normalization and 400s happen in the ingestor
    model_config = ConfigDict(populate_by_name=True)

    movie_id: Any = Field(default=None, alias="movieId")
    event_type: Any = Field(default=None, alias="eventType")
    mode: Any = None
    value: Any = None


@app.post("/api/analytics/track", status_code=201)
def track_event(
    body: TrackEventRequest,
    conn: sqlite3.Connection = Depends(get_conn),
    user_id: Optional[str] = Depends(current_user_id),
):
    record_event(
        conn,
        movie_id=body.movie_id,
        event_type=body.event_type,
        user_id=user_id,
        value=body.value,
        mode=body.mode,
        default_mode=settings.default_event_mode,
    )
    return {"ok": True}


# Dashboard
@app.get("/api/analytics")
def analytics_dashboard(
    granularity: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    conn: sqlite3.Connection = Depends(get_conn),
):
    # lenient: bad granularity/limit normalize instead of 400
    report = get_dashboard_summary(
        conn,
        granularity=granularity,
        limit=limit,
        hot_limit=settings.hot_movies_limit,
    )
    return report.to_dict()


@app.get("/api/analytics/views")
def analytics_view_counts(
    ids: str = Query(""),
    conn: sqlite3.Connection = Depends(get_conn),
):
    return view_counts(conn, ids.split(","))


# Ratings
class RatingRequest(BaseModel):
    rating: Any = None


def _require_movie_param(movie_id: str) -> str:
    movie_id = (movie_id or "").strip()
    if not movie_id:
        raise InvalidInput("movieId is required")
    return movie_id


@app.get("/api/ratings/{movie_id}")
def rating_summary(
    movie_id: str,
    conn: sqlite3.Connection = Depends(get_conn),
    user_id: Optional[str] = Depends(current_user_id),
):
    movie_id = _require_movie_param(movie_id)
    ratings_bootstrap.ensure(conn)
    return get_rating_summary(conn, movie_id, user_id).to_dict()


@app.post("/api/ratings/{movie_id}")
def rate_movie(
    movie_id: str,
    body: RatingRequest,
    conn: sqlite3.Connection = Depends(get_conn),
    user_id: Optional[str] = Depends(current_user_id),
):
    movie_id = _require_movie_param(movie_id)
    return submit_rating(conn, movie_id, user_id, body.rating).to_dict()
