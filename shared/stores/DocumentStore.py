import asyncio
from abc import ABC, abstractmethod

from shared.models.bot import DocumentRecord


class DocumentStoreInterface(ABC):
    """Processing state of uploaded documents."""

    @abstractmethod
    async def save_document(self, record: DocumentRecord) -> None:
        pass

    @abstractmethod
    async def get_document(self, bot_id: str, document_id: str) -> DocumentRecord | None:
        pass

    @abstractmethod
    async def list_documents(self, bot_id: str) -> list[DocumentRecord]:
        pass

    @abstractmethod
    async def delete_document(self, bot_id: str, document_id: str) -> bool:
        pass


class InMemoryDocumentStore(DocumentStoreInterface):
    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], DocumentRecord] = {}
        self._lock = asyncio.Lock()

    async def save_document(self, record: DocumentRecord) -> None:
        async with self._lock:
            self._documents[(record.bot_id, record.id)] = record.model_copy(deep=True)

    async def get_document(self, bot_id: str, document_id: str) -> DocumentRecord | None:
        async with self._lock:
            record = self._documents.get((bot_id, document_id))
            return record.model_copy(deep=True) if record else None

    async def list_documents(self, bot_id: str) -> list[DocumentRecord]:
        async with self._lock:
            return [r.model_copy(deep=True) for (b, _), r in self._documents.items() if b == bot_id]

    async def delete_document(self, bot_id: str, document_id: str) -> bool:
        async with self._lock:
            return self._documents.pop((bot_id, document_id), None) is not None
