from pydantic import BaseModel, Field

from shared.models.passage import Passage


class VectorRecord(BaseModel):
    """A passage paired with its embedding, ready to be written. Point ids are assigned on write."""

    embedding: list[float]
    passage: Passage


class CollectionStatus(BaseModel):
    exists: bool = False
    point_count: int = 0
    vector_size: int | None = None


class UpsertResult(BaseModel):
    stored_count: int
    ids: list[str]


class RetrievedPassage(BaseModel):
    """One passage returned by a similarity query.

    ``payload`` is the stored point payload (see VectorPoint); ``text`` and
    ``document_name`` are lifted out of it for convenience.
    """

    point_id: str
    score: float
    text: str
    document_name: str
    chunk_index: int
    document_id: str | None = None
    payload: dict = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    """Ordered list of passages, descending by score. May be empty."""

    passages: list[RetrievedPassage] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.passages

    def __len__(self) -> int:
        return len(self.passages)


class SourceReference(BaseModel):
    """Attribution attached to an assistant message generated from retrieved context."""

    file_name: str
    chunk_index: int
    score: float
    index: int
