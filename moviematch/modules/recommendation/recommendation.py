"""
Recommendation logic for a two-person session.

Pure functions over session data: no storage, no I/O.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from moviematch.errors import IncompleteRatings
from moviematch.modules.session import SLOTS, Session


@dataclass
class Recommendation:
    """The selected movie and its combined score."""

    movie: Dict[str, Any]
    score: float


def _genre_sort_key(genre: str):
    return (0, int(genre), genre) if genre.isdigit() else (1, 0, genre)


def union_genres(*genre_sets: Iterable[str]) -> List[str]:
    """
    Union of every participant's genres.

    Duplicates are removed; the result is sorted by numeric id so the
    provider query does not depend on who saved preferences first.
    """
    merged = set()
    for genres in genre_sets:
        merged.update(str(genre) for genre in genres)
    return sorted(merged, key=_genre_sort_key)


def effective_cutoff(*cutoffs: Optional[int]) -> Optional[int]:
    """
    Most restrictive release-year cutoff.

    A missing cutoff means "no limit" and never wins over a real one.
    Returns None when nobody set a cutoff.
    """
    present = [cutoff for cutoff in cutoffs if cutoff is not None]
    return min(present) if present else None


def missing_ratings(session: Session) -> Dict[str, List[int]]:
    """
    Listed movies each slot has not rated yet.

    Only an absent key counts as unrated; any stored value (even 0) is a rating.
    """
    missing = {}
    for slot in SLOTS:
        ratings = session.participants[slot].ratings
        unrated = [movie["id"] for movie in session.movie_list if movie["id"] not in ratings]
        if unrated:
            missing[slot] = unrated
    return missing


def pick_recommendation(
    movies: List[Dict[str, Any]],
    ratings_a: Mapping[int, int],
    ratings_b: Mapping[int, int],
) -> Optional[Recommendation]:
    """
    Pick the movie with the highest average of both ratings.

    Unrated movies score 0 from that participant. Ties keep the movie listed
    first, so the provider's ordering decides between equal scores.

    Returns:
        Recommendation, or None for an empty movie list
    """
    best = None
    best_score = -1.0
    for movie in movies:
        movie_id = movie["id"]
        score = (ratings_a.get(movie_id, 0) + ratings_b.get(movie_id, 0)) / 2
        if score > best_score:
            best_score = score
            best = movie

    if best is None:
        return None
    return Recommendation(movie=best, score=best_score)


def recommend(session: Session, require_complete: bool = True) -> Optional[Recommendation]:
    """
    Compute the session's recommendation.

    Args:
        session: Session with its fetched movie list and ratings
        require_complete: Refuse until both participants rated every listed movie

    Raises:
        IncompleteRatings: require_complete is set and ratings are missing
    """
    if require_complete:
        missing = missing_ratings(session)
        if missing:
            raise IncompleteRatings(missing)

    return pick_recommendation(
        session.movie_list,
        session.participants["userA"].ratings,
        session.participants["userB"].ratings,
    )
