import asyncio
import logging
import secrets
import string
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from moviematch.errors import ExhaustedCodespace, InvalidSlot, SessionFull, SessionNotFound

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6

# Join order: the first participant gets userA, the second userB
SLOTS = ("userA", "userB")

T = TypeVar("T")


def normalize_code(code: str) -> str:
    """Session codes are case-insensitive; store and look up in upper case."""
    return code.strip().upper()


@dataclass
class Participant:
    """One of the two fixed participant slots in a session."""

    genres: List[str] = field(default_factory=list)
    release_year_cutoff: Optional[int] = None
    ratings: Dict[int, int] = field(default_factory=dict)
    joined: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["ratings"] = {str(movie_id): rating for movie_id, rating in self.ratings.items()}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        """Create from dictionary (e.g., from JSON, where keys are strings)."""
        return cls(
            genres=list(data.get("genres", [])),
            release_year_cutoff=data.get("release_year_cutoff"),
            ratings={int(movie_id): rating for movie_id, rating in data.get("ratings", {}).items()},
            joined=data.get("joined", False),
        )


@dataclass
class Session:
    """A two-party matchmaking record keyed by a short code."""

    code: str
    participants: Dict[str, Participant] = field(
        default_factory=lambda: {slot: Participant() for slot in SLOTS}
    )
    movie_list: List[Dict[str, Any]] = field(default_factory=list)
    created_at: Optional[str] = None
    last_activity: Optional[str] = None

    def participant(self, slot: str) -> Participant:
        """
        Look up a participant slot.

        Raises:
            InvalidSlot: If slot is not one of userA/userB
        """
        if slot not in SLOTS:
            raise InvalidSlot(slot)
        return self.participants[slot]

    @property
    def is_full(self) -> bool:
        return all(self.participants[slot].joined for slot in SLOTS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "participants": {slot: p.to_dict() for slot, p in self.participants.items()},
            "movie_list": self.movie_list,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        participants = data.get("participants", {})
        return cls(
            code=data["code"],
            participants={
                slot: Participant.from_dict(participants.get(slot, {})) for slot in SLOTS
            },
            movie_list=list(data.get("movie_list", [])),
            created_at=data.get("created_at"),
            last_activity=data.get("last_activity"),
        )


class SessionModule:
    def __init__(
        self,
        backend,
        default_ttl: int = 86400,
        max_code_attempts: int = 100,
        code_length: int = CODE_LENGTH,
    ):
        """
        Initialize session module.

        Args:
            backend: Session storage backend (see moviematch.modules.storage)
            default_ttl: Seconds a session survives without activity
            max_code_attempts: Draws allowed before giving up on a unique code
            code_length: Length of generated session codes
        """
        self.backend = backend
        self.default_ttl = default_ttl
        self.max_code_attempts = max_code_attempts
        self.code_length = code_length
        # Guards every read-modify-write on the backend
        self._lock = asyncio.Lock()

    def _generate_code(self) -> str:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(self.code_length))

    async def create_session(self) -> str:
        """
        Create a new session.

        Returns:
            Session code (6 uppercase alphanumeric characters)

        Raises:
            ExhaustedCodespace: If no unused code was drawn in max_code_attempts

        Logic:
        1. Draw a candidate code
        2. Redraw while it collides with a live session
        3. Store a record with two empty, unjoined participants
        """
        async with self._lock:
            for _ in range(self.max_code_attempts):
                code = self._generate_code()
                if not await self.backend.exists(code):
                    break
            else:
                logger.error(f"Session code space exhausted after {self.max_code_attempts} attempts")
                raise ExhaustedCodespace(self.max_code_attempts)

            now = datetime.now(UTC).isoformat()
            session = Session(code=code, created_at=now, last_activity=now)
            await self.backend.put(code, session.to_dict(), self.default_ttl)

        logger.info(f"Created session {code}")
        return code

    async def get_session(self, code: str) -> Optional[Session]:
        """
        Get session details.

        Args:
            code: Session code (any case)

        Returns:
            Session or None if not found or expired
        """
        data = await self.backend.get(normalize_code(code))
        if data:
            return Session.from_dict(data)
        return None

    async def _mutate(self, code: str, change: Callable[[Session], T]) -> T:
        """Apply change to a session under the lock and save it.

        The change runs against a private copy, so a raised error leaves the
        stored record untouched.
        """
        code = normalize_code(code)
        async with self._lock:
            data = await self.backend.get(code)
            if not data:
                raise SessionNotFound(code)

            session = Session.from_dict(data)
            result = change(session)
            session.last_activity = datetime.now(UTC).isoformat()
            await self.backend.put(code, session.to_dict(), self.default_ttl)
            return result

    async def join(self, code: str) -> str:
        """
        Claim the next free participant slot.

        Returns:
            "userA" for the first join, "userB" for the second

        Raises:
            SessionNotFound: Unknown or expired code
            SessionFull: Both slots are already taken
        """

        def claim(session: Session) -> str:
            for slot in SLOTS:
                participant = session.participants[slot]
                if not participant.joined:
                    participant.joined = True
                    return slot
            raise SessionFull(session.code)

        slot = await self._mutate(code, claim)
        logger.info(f"Participant joined session {normalize_code(code)} as {slot}")
        return slot

    async def set_preferences(
        self,
        code: str,
        slot: str,
        genres: List[str],
        release_year_cutoff: Optional[int] = None,
    ) -> None:
        """
        Replace a participant's genres and, if given, their release-year cutoff.

        The genre list is overwritten, never merged with the previous one.
        """

        def update(session: Session) -> None:
            participant = session.participant(slot)
            participant.genres = list(genres)
            if release_year_cutoff is not None:
                participant.release_year_cutoff = release_year_cutoff

        await self._mutate(code, update)

    async def set_rating(self, code: str, slot: str, movie_id: int, rating: int) -> None:
        """Insert or overwrite one participant's rating for a movie."""

        def update(session: Session) -> None:
            session.participant(slot).ratings[movie_id] = rating

        await self._mutate(code, update)

    async def set_movie_list(self, code: str, movies: List[Dict[str, Any]]) -> None:
        """Replace the session's candidate list, keeping the given order."""

        def update(session: Session) -> None:
            session.movie_list = list(movies)

        await self._mutate(code, update)

    async def get_movie_list(self, code: str) -> List[Dict[str, Any]]:
        session = await self.get_session(code)
        if not session:
            raise SessionNotFound(normalize_code(code))
        return session.movie_list

    async def end_session(self, code: str) -> None:
        """
        End a session early.

        Raises:
            SessionNotFound: Unknown or expired code
        """
        code = normalize_code(code)
        async with self._lock:
            if not await self.backend.delete(code):
                raise SessionNotFound(code)
        logger.info(f"Ended session {code}")

    async def count_active(self) -> int:
        """Number of live sessions (used for monitoring)."""
        return await self.backend.count()

    async def cleanup_expired(self) -> int:
        """
        Clean up expired sessions.

        Returns:
            Number of sessions cleaned up
        """
        async with self._lock:
            return await self.backend.cleanup_expired()
