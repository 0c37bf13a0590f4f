"""
MovieMatch shared data models.

These models define the JSON shapes exchanged with clients. Fields are
snake_case in Python and camelCase on the wire; input accepts either.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# TMDb has nothing released before this year
EARLIEST_RELEASE_YEAR = 1874
LATEST_RELEASE_YEAR = 2100


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request Models (API Input)


class PreferencesRequest(CamelModel):
    """A participant's genre and release-year preferences."""

    slot: str = Field(..., description="Participant slot (userA or userB)")
    genres: List[str] = Field(
        default_factory=list, description="Genre ids; replaces the previous selection"
    )
    release_year_cutoff: Optional[int] = Field(
        None,
        description="Only movies released in or before this year",
        ge=EARLIEST_RELEASE_YEAR,
        le=LATEST_RELEASE_YEAR,
    )

    @field_validator("genres", mode="before")
    @classmethod
    def validate_genres(cls, v):
        """Accept numeric ids as ints or strings, drop duplicates, keep order."""
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("genres must be a list")

        genres = []
        for genre in v:
            if isinstance(genre, bool) or not isinstance(genre, (int, str)):
                raise ValueError(f"Invalid genre id: {genre!r}")
            genre = str(genre).strip()
            if not genre.isdigit():
                raise ValueError(f"Invalid genre id: {genre!r}")
            if genre not in genres:
                genres.append(genre)
        return genres

    @field_validator("release_year_cutoff", mode="before")
    @classmethod
    def blank_cutoff_is_none(cls, v):
        """Browser forms send an empty string for "no cutoff"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RateRequest(CamelModel):
    """One participant's rating of one movie."""

    slot: str = Field(..., description="Participant slot (userA or userB)")
    movie_id: int = Field(..., description="Catalog movie id")
    rating: int = Field(..., description="Rating from 1 to 5", ge=1, le=5)


# Response Models (API Output)


class Movie(CamelModel):
    """Candidate movie record."""

    id: int
    title: str
    overview: str = ""
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    popularity: Optional[float] = None
    vote_average: Optional[float] = None
    genre_ids: List[int] = Field(default_factory=list)


class CodeResponse(CamelModel):
    code: str


class JoinResponse(CamelModel):
    slot: str


class OkResponse(CamelModel):
    ok: bool = True
    message: Optional[str] = None


class MoviesResponse(CamelModel):
    movies: List[Movie]


class RecommendationResponse(CamelModel):
    """Recommended movie, or a message when there is nothing to recommend."""

    recommended: Optional[Movie] = None
    score: Optional[float] = None
    message: Optional[str] = None


class ParticipantStatus(CamelModel):
    joined: bool
    genres: List[str]
    release_year_cutoff: Optional[int] = None
    rated_count: int = 0


class SessionStatusResponse(CamelModel):
    code: str
    full: bool
    participants: Dict[str, ParticipantStatus]
    movie_count: int
    created_at: Optional[str] = None
    last_activity: Optional[str] = None


class ErrorResponse(CamelModel):
    error: str
    kind: str
    missing: Optional[Dict[str, List[int]]] = None
