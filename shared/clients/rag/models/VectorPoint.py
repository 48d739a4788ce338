"""VectorPoint model: the payload stored alongside each passage vector."""

from pydantic import BaseModel, Field


class VectorPoint(BaseModel):
    """Payload stored alongside each passage vector in a bot collection.

    The field names are persisted and must stay stable across versions:
    document_id, chunk_index, token_count, bot_id and stored_at are the only
    way to later delete or attribute vectors back to a source document.

    Attributes:
        point_id:      The point id, mirrored into the payload for debugging.
        bot_id:        Owning bot; equals the collection name.
        document_id:   Source document the passage was cut from.
        document_name: Human-readable source name shown in citations.
        chunk_index:   Zero-based position of the passage within the document.
        total_chunks:  Number of passages the document was cut into.
        token_count:   Exact token count under the embedding model's tokenizer.
        size_bytes:    UTF-8 size of the passage text.
        content_type:  Content type used to pick chunking separators.
        text:          Raw passage text.
        stored_at:     ISO-8601 timestamp of the write.
        extra:         Caller metadata not covered by the fields above.
    """

    point_id: str
    bot_id: str | None = None
    document_id: str | None = None
    document_name: str = "Unknown file"
    chunk_index: int
    total_chunks: int
    token_count: int
    size_bytes: int
    content_type: str = "text"
    text: str
    stored_at: str
    extra: dict = Field(default_factory=dict)
