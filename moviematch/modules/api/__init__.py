"""
API Module - Black Box Interface

Purpose: HTTP request/response shapes
Interface: pydantic models used by the REST endpoints
Hidden: Field aliasing, input coercion and validation

The API layer only orchestrates - it contains no business logic.
All logic is delegated to appropriate modules.
"""

from .models import (
    CodeResponse,
    ErrorResponse,
    JoinResponse,
    Movie,
    MoviesResponse,
    OkResponse,
    ParticipantStatus,
    PreferencesRequest,
    RateRequest,
    RecommendationResponse,
    SessionStatusResponse,
)

__all__ = [
    "PreferencesRequest",
    "RateRequest",
    "Movie",
    "CodeResponse",
    "JoinResponse",
    "OkResponse",
    "MoviesResponse",
    "RecommendationResponse",
    "ParticipantStatus",
    "SessionStatusResponse",
    "ErrorResponse",
]
