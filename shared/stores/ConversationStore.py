import asyncio
from abc import ABC, abstractmethod

from shared.models.conversation import ConversationSession


class ConversationStoreInterface(ABC):
    """Persistence of conversation transcripts. Each save replaces the whole session in one write."""

    @abstractmethod
    async def load_session(self, bot_id: str, session_id: str) -> ConversationSession | None:
        pass

    @abstractmethod
    async def save_session(self, session: ConversationSession) -> None:
        pass

    @abstractmethod
    async def list_sessions(self, bot_id: str) -> list[ConversationSession]:
        pass


class InMemoryConversationStore(ConversationStoreInterface):
    def __init__(self) -> None:
        self._sessions: dict[tuple[str, str], ConversationSession] = {}
        self._lock = asyncio.Lock()

    async def load_session(self, bot_id: str, session_id: str) -> ConversationSession | None:
        async with self._lock:
            session = self._sessions.get((bot_id, session_id))
            return session.model_copy(deep=True) if session else None

    async def save_session(self, session: ConversationSession) -> None:
        async with self._lock:
            self._sessions[(session.bot_id, session.session_id)] = session.model_copy(deep=True)

    async def list_sessions(self, bot_id: str) -> list[ConversationSession]:
        async with self._lock:
            return [s.model_copy(deep=True) for (b, _), s in self._sessions.items() if b == bot_id]
