from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str
    session_id: str


class DocumentIngestRequest(BaseModel):
    """Already extracted document text to index for a bot."""

    name: str
    text: str
    document_id: str | None = None
    content_type: str = "text"
    mime_type: str = "text/plain"
    max_chunk_size: int | None = Field(default=None, gt=0)
    overlap: int | None = Field(default=None, ge=0)
