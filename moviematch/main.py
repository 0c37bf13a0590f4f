#!/usr/bin/env python3
"""
MovieMatch - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from moviematch import __version__
from moviematch.errors import MovieMatchError, ServiceUnavailable, SessionNotFound
from moviematch.logging_config import get_logging_config
from moviematch.modules.api import (
    CodeResponse,
    ErrorResponse,
    JoinResponse,
    MoviesResponse,
    OkResponse,
    ParticipantStatus,
    PreferencesRequest,
    RateRequest,
    RecommendationResponse,
    SessionStatusResponse,
)

# Import modules through their black box interfaces
from moviematch.modules.catalog import CatalogModule
from moviematch.modules.config import get_config
from moviematch.modules.recommendation import effective_cutoff, recommend, union_genres
from moviematch.modules.session import Session, SessionModule, normalize_code
from moviematch.modules.storage import StorageModule

# Get configuration
config = get_config()

# Configure logging with health check suppression
log_config.dictConfig(get_logging_config(config.get("log_level")))
logger = logging.getLogger(__name__)

# Module instances (initialized at startup)
storage_module: Optional[StorageModule] = None
session_module: Optional[SessionModule] = None
catalog_module: Optional[CatalogModule] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    global storage_module, session_module, catalog_module

    # Startup
    logger.info("Starting MovieMatch API...")

    storage_module = StorageModule(config.get("session_backend"), config.get("redis_url"))
    backend = await storage_module.connect()

    session_module = SessionModule(
        backend,
        default_ttl=config.get("session_ttl"),
        max_code_attempts=config.get("max_code_attempts"),
    )
    catalog_module = CatalogModule(
        api_key=config.get("tmdb_api_key"),
        base_url=config.get("tmdb_base_url"),
        language=config.get("tmdb_language"),
        timeout=config.get("catalog_timeout"),
    )
    if not catalog_module.is_configured:
        logger.warning("TMDB_API_KEY is not set - fetching movies will fail until it is configured")

    logger.info("MovieMatch API started successfully")

    yield

    # Shutdown
    logger.info("Shutting down MovieMatch API...")
    await storage_module.disconnect()
    logger.info("MovieMatch API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="MovieMatch API",
    description="MovieMatch - Pick a movie together",
    version=__version__,
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("cors_origins"),
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency helpers


def _sessions() -> SessionModule:
    if not session_module:
        raise ServiceUnavailable()
    return session_module


async def _load_session(code: str) -> Session:
    session = await _sessions().get_session(code)
    if not session:
        raise SessionNotFound(normalize_code(code))
    return session


# Session Endpoints


@app.get("/sessions", response_model=CodeResponse)
@app.post("/sessions", response_model=CodeResponse)
async def create_session():
    """
    Generate a new session code.

    Returns:
        200: {"code": "ABC123"}
        503: Code space exhausted
    """
    code = await _sessions().create_session()
    return CodeResponse(code=code)


@app.get("/sessions/{code}", response_model=SessionStatusResponse)
async def get_session(code: str):
    """
    Get session status (useful for clients waiting on their partner).

    Returns:
        200: Session details
        404: Session not found
    """
    session = await _load_session(code)

    return SessionStatusResponse(
        code=session.code,
        full=session.is_full,
        participants={
            slot: ParticipantStatus(
                joined=participant.joined,
                genres=participant.genres,
                release_year_cutoff=participant.release_year_cutoff,
                rated_count=len(participant.ratings),
            )
            for slot, participant in session.participants.items()
        },
        movie_count=len(session.movie_list),
        created_at=session.created_at,
        last_activity=session.last_activity,
    )


@app.post("/sessions/{code}/join", response_model=JoinResponse)
async def join_session(code: str):
    """
    Join a session. The first caller becomes userA, the second userB.

    Returns:
        200: {"slot": "userA"}
        404: Session not found
        409: Session is full
    """
    slot = await _sessions().join(code)
    return JoinResponse(slot=slot)


@app.post("/sessions/{code}/preferences", response_model=OkResponse)
async def save_preferences(code: str, request: PreferencesRequest):
    """
    Save a participant's genres and optional release-year cutoff.

    Returns:
        200: Preferences updated
        400: Invalid slot
        404: Session not found
    """
    await _sessions().set_preferences(
        code,
        request.slot,
        request.genres,
        request.release_year_cutoff,
    )
    return OkResponse(message="Preferences updated")


@app.get("/sessions/{code}/movies", response_model=MoviesResponse)
async def fetch_movies(code: str):
    """
    Fetch candidate movies for both participants' combined preferences.

    Uses the union of both genre selections and the earlier of the two
    release-year cutoffs. The list replaces any previously fetched one.

    Returns:
        200: {"movies": [...]}
        404: Session not found
        502: Movie catalog unavailable
    """
    if not catalog_module:
        raise ServiceUnavailable()

    session = await _load_session(code)
    user_a = session.participants["userA"]
    user_b = session.participants["userB"]

    genres = union_genres(user_a.genres, user_b.genres)
    cutoff = effective_cutoff(user_a.release_year_cutoff, user_b.release_year_cutoff)

    # The provider call runs outside the session lock
    movies = await catalog_module.discover(genres, cutoff, limit=config.get("movie_list_size"))
    await _sessions().set_movie_list(session.code, movies)

    logger.info(f"Session {session.code}: stored {len(movies)} candidate movies")
    return MoviesResponse(movies=movies)


@app.post("/sessions/{code}/rate", response_model=OkResponse)
async def rate_movie(code: str, request: RateRequest):
    """
    Save one participant's rating of one movie.

    Returns:
        200: Rating saved
        400: Invalid slot
        404: Session not found
    """
    await _sessions().set_rating(code, request.slot, request.movie_id, request.rating)
    return OkResponse(message="Rating saved")


@app.get("/sessions/{code}/recommendation", response_model=RecommendationResponse)
async def get_recommendation(code: str):
    """
    Recommend the movie with the highest combined rating.

    Returns:
        200: {"recommended": {...}, "score": 4.5}, or a message when the list is empty
        404: Session not found
        409: Both users have not finished rating yet
    """
    session = await _load_session(code)
    result = recommend(session, require_complete=config.get("require_complete_ratings"))

    if not result:
        return RecommendationResponse(message="No ratings found to make a recommendation")

    logger.info(f"Session {session.code}: recommending movie {result.movie['id']}")
    return RecommendationResponse(recommended=result.movie, score=result.score)


@app.delete("/sessions/{code}", status_code=204)
async def end_session(code: str):
    """
    End a session.

    Returns:
        204: Session ended
        404: Session not found
    """
    await _sessions().end_session(code)
    return Response(status_code=204)


# Health/Monitoring Endpoints


@app.get("/healthz")
async def healthz():
    """
    Minimal health check endpoint for readiness/liveness probes.

    Returns:
        200: Service is running
    """
    return {"status": "ok"}


@app.get("/health")
async def health_check():
    """
    Health check with storage and catalog status.

    Returns:
        200: Service healthy
        503: Service unhealthy
    """
    try:
        if not session_module or not catalog_module:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "modules": "not initialized"},
            )

        active_sessions = await session_module.count_active()
        return {
            "status": "healthy",
            "modules": "initialized",
            "storage": config.get("session_backend"),
            "catalog": "configured" if catalog_module.is_configured else "not configured",
            "active_sessions": active_sessions,
            "version": __version__,
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})


@app.get("/metrics")
async def metrics():
    """
    Prometheus-compatible metrics endpoint.

    Returns basic metrics about the system.
    """
    if not session_module:
        return Response(content="", status_code=503)

    active_sessions = await session_module.count_active()

    metrics_text = f"""# HELP moviematch_active_sessions Number of live matchmaking sessions
# TYPE moviematch_active_sessions gauge
moviematch_active_sessions {active_sessions}
"""

    return Response(content=metrics_text, media_type="text/plain")


# Error handlers


@app.exception_handler(MovieMatchError)
async def moviematch_error_handler(request: Request, exc: MovieMatchError):
    """Handle domain errors with their status and a structured body."""
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(redis.ConnectionError)
async def redis_error_handler(request, exc):
    """Handle Redis connection errors."""
    logger.error(f"Redis connection error: {exc}")
    return JSONResponse(status_code=503, content={"error": "Database connection failed"})


@app.exception_handler(ValueError)
async def validation_error_handler(request, exc):
    """Handle validation errors."""
    logger.error(f"Validation error: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


def run():
    """Console entry point."""
    uvicorn.run(
        "moviematch.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    run()
