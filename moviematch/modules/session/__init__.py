"""
Session Module - Black Box Interface

Purpose: Manage two-person matchmaking session lifecycle
Interface: create_session(), join(), set_preferences(), set_rating(),
           set_movie_list(), get_session(), end_session()
Hidden: Code generation, storage backend, locking, TTL refresh

Replaceable with any session backend (database, in-memory, distributed cache).
"""

from .session import SLOTS, Participant, Session, SessionModule, normalize_code

__all__ = ["SessionModule", "Session", "Participant", "SLOTS", "normalize_code"]
