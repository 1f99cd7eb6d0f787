"""In-memory repository implementation."""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import structlog

from ..domain.models import GREETING, Message, Session, Transcript
from .base import SessionRepository

logger = structlog.get_logger()


class SessionNotFound(LookupError):
    """Raised when a session id is unknown."""


class InMemoryRepository(SessionRepository):
    """Process-local session store.

    Each session maps to an immutable ``Transcript``; appends swap in a new
    value under a lock, so readers holding an older snapshot are unaffected.
    """

    def __init__(self, greeting: str = GREETING) -> None:
        self._greeting = greeting
        self._transcripts: Dict[UUID, Transcript] = {}
        self._created: Dict[UUID, datetime] = {}
        self._lock = asyncio.Lock()
        logger.info("repository_initialized")

    def _session(self, session_id: UUID) -> Session:
        return Session(
            id=session_id,
            created_at=self._created[session_id],
            messages=list(self._transcripts[session_id]),
        )

    async def create_session(self) -> Session:
        transcript = Transcript.start(self._greeting)
        session_id = uuid4()
        async with self._lock:
            self._transcripts[session_id] = transcript
            self._created[session_id] = transcript[0].created_at
            session = self._session(session_id)
        logger.info("session_created", session_id=str(session_id))
        return session

    async def get_session(self, session_id: UUID) -> Optional[Session]:
        async with self._lock:
            if session_id not in self._transcripts:
                logger.warning("session_not_found", session_id=str(session_id))
                return None
            return self._session(session_id)

    async def delete_session(self, session_id: UUID) -> None:
        async with self._lock:
            if self._transcripts.pop(session_id, None) is None:
                logger.warning("session_not_found_for_delete", session_id=str(session_id))
                raise SessionNotFound(f"Session {session_id} not found")
            self._created.pop(session_id, None)
        logger.info("session_deleted", session_id=str(session_id))

    async def get_transcript(self, session_id: UUID) -> Transcript:
        async with self._lock:
            try:
                return self._transcripts[session_id]
            except KeyError:
                raise SessionNotFound(f"Session {session_id} not found") from None

    async def append_message(self, session_id: UUID, message: Message) -> Transcript:
        async with self._lock:
            transcript = self._transcripts.get(session_id)
            if transcript is None:
                logger.error("session_not_found_for_message", session_id=str(session_id))
                raise SessionNotFound(f"Session {session_id} not found")

            transcript = transcript.append(message)
            self._transcripts[session_id] = transcript

        logger.info(
            "message_added",
            session_id=str(session_id),
            author=message.author.value,
            length=len(transcript),
        )
        return transcript

    async def get_messages(
        self, session_id: UUID, limit: int = 100, offset: int = 0
    ) -> List[Message]:
        transcript = await self.get_transcript(session_id)
        return list(transcript.messages[offset : offset + limit])
