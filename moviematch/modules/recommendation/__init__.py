"""
Recommendation Module - Black Box Interface

Purpose: Turn two participants' preferences and ratings into one pick
Interface: union_genres(), effective_cutoff(), recommend()
Hidden: Scoring formula, tie-breaking, completeness checks
"""

from .recommendation import (
    Recommendation,
    effective_cutoff,
    missing_ratings,
    pick_recommendation,
    recommend,
    union_genres,
)

__all__ = [
    "Recommendation",
    "effective_cutoff",
    "missing_ratings",
    "pick_recommendation",
    "recommend",
    "union_genres",
]
