"""Domain models for the tutor chat."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

GREETING = (
    "Hello! I'm your Java and DSA tutor. I'm here to help you learn and improve "
    "your coding skills. Feel free to ask me questions about data structures, "
    "algorithms, or submit your code for review!"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Author(str, Enum):
    """Who wrote a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """Message model."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    text: str
    author: Author
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_user(cls, text: str) -> "Message":
        return cls(text=text, author=Author.USER)

    @classmethod
    def from_assistant(cls, text: str) -> "Message":
        return cls(text=text, author=Author.ASSISTANT)


@dataclass(frozen=True)
class Transcript:
    """Ordered, append-only record of a conversation.

    Insertion order is conversation order. ``append`` never touches the
    receiver; it returns a new transcript, so a snapshot handed to an
    in-flight request stays stable while later turns are added.
    """

    messages: Tuple[Message, ...] = ()

    def __post_init__(self) -> None:
        # Copy so a caller's list cannot change the transcript later.
        object.__setattr__(self, "messages", tuple(self.messages))

    @classmethod
    def start(cls, greeting: str = GREETING) -> "Transcript":
        """Create a session transcript seeded with the assistant greeting."""
        return cls((Message.from_assistant(greeting),))

    def append(self, message: Message) -> "Transcript":
        return Transcript(self.messages + (message,))

    @property
    def last(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __getitem__(self, index):
        return self.messages[index]


class Session(BaseModel):
    """A tutoring session as exposed to the UI."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_utcnow)
    messages: List[Message] = []
