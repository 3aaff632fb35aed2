"""
In-process conversation memory and session bookkeeping.

Nothing here outlives the process.  A :class:`Session` owns one :class:`ConversationMemory` and a
lock; callers must hold the lock for the whole turn so two turns of one session never interleave.
"""

import asyncio
import uuid
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Dict,
    List,
    Optional,
)

from pydantic import BaseModel


class ConversationTurn(BaseModel):
    """A completed exchange."""

    user_message: str
    reply: str

    def render(self) -> str:
        return f"User: {self.user_message}\nAssistant: {self.reply}"


class ConversationMemory:
    """Append-only log of completed turns."""

    def __init__(self, max_turns: int | None = None) -> None:
        self._turns: List[ConversationTurn] = []
        self.max_turns = max_turns

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    def append(self, turn: ConversationTurn) -> None:
        self._turns.append(turn)

    def history(self, limit: int | None = None) -> str:
        """Render the last *limit* turns (default ``max_turns``, all if unset) oldest first."""
        if limit is None:
            limit = self.max_turns
        turns = self._turns
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return "\n\n".join(turn.render() for turn in turns)

    def __len__(self) -> int:
        return len(self._turns)


@dataclass
class Session:
    session_id: str
    memory: ConversationMemory
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """Session id -> :class:`Session`."""

    def __init__(self, history_turns: int | None = None) -> None:
        self._sessions: Dict[str, Session] = {}
        self.history_turns = history_turns

    def get_or_create(self, session_id: Optional[str] = None) -> Session:
        """Return the existing session or create a new one with a fresh id."""
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]

        new_id = str(uuid.uuid4())
        session = Session(session_id=new_id, memory=ConversationMemory(self.history_turns))
        self._sessions[new_id] = session
        return session

    def ids(self) -> List[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
