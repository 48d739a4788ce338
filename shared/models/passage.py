from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChunkOptions(BaseModel):
    """Options for a single chunking call.

    Attributes:
        max_chunk_size: Maximum characters per passage.
        overlap:        Characters carried over from the previous passage.
        content_type:   Selects the separator priority list (e.g. "markdown", "pdf").
        separators:     Explicit separator list overriding the content type default.
    """

    max_chunk_size: int = 700
    overlap: int = 100
    content_type: str = "text"
    separators: list[str] | None = None


class Passage(BaseModel):
    """A bounded segment of a source document, the unit of embedding and retrieval.

    Immutable once created. ``metadata`` holds caller supplied fields such as
    the original file name.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    sequence_index: int
    total_siblings: int
    source_document_id: str | None = None
    bot_id: str | None = None
    token_count: int
    size_bytes: int
    content_type: str = "text"
    created_at: datetime = Field(default_factory=utc_now)
    metadata: dict = Field(default_factory=dict)

    @property
    def document_name(self) -> str:
        return str(self.metadata.get("document_name") or self.metadata.get("source") or "Unknown file")
