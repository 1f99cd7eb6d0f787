"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..domain.models import Message, Session, Transcript


class SessionRepository(ABC):
    """Abstract base class for session transcript storage."""

    @abstractmethod
    async def create_session(self) -> Session:
        """Create a new session seeded with the greeting."""
        pass

    @abstractmethod
    async def get_session(self, session_id: UUID) -> Optional[Session]:
        """Retrieve a session by ID."""
        pass

    @abstractmethod
    async def delete_session(self, session_id: UUID) -> None:
        """Discard a session and its transcript."""
        pass

    @abstractmethod
    async def get_transcript(self, session_id: UUID) -> Transcript:
        """Return the current transcript snapshot of a session."""
        pass

    @abstractmethod
    async def append_message(self, session_id: UUID, message: Message) -> Transcript:
        """Append a message and return the resulting transcript."""
        pass

    @abstractmethod
    async def get_messages(
        self, session_id: UUID, limit: int = 100, offset: int = 0
    ) -> List[Message]:
        """Get messages for a session with pagination."""
        pass
