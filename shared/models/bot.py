from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from shared.models.passage import utc_now


class FAQ(BaseModel):
    """Keyword triggered canned answer configured per bot."""

    keywords: list[str]
    answer: str
    question: str | None = None
    enabled: bool = True


class Bot(BaseModel):
    """The parts of a bot record the pipeline reads. ``id`` doubles as the collection name."""

    id: str
    name: str
    owner_id: str
    description: str | None = None
    faqs: list[FAQ] = Field(default_factory=list)


class BotUsage(BaseModel):
    """Aggregate counters kept per bot."""

    total_messages: int = 0
    total_tokens_used: int = 0
    relevant_responses: int = 0
    fallback_responses: int = 0
    total_embeddings: int = 0
    file_count: int = 0
    storage_used: int = 0


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentRecord(BaseModel):
    """Processing state of one uploaded source document."""

    id: str
    bot_id: str
    name: str
    mime_type: str = "text/plain"
    content_type: str = "text"
    size_bytes: int = 0
    status: DocumentStatus = DocumentStatus.PENDING
    total_chunks: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
    vector_ids: list[str] = Field(default_factory=list)
    processing_error: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    processed_at: datetime | None = None


class BotRegistry(BaseModel):
    """Seed file contents for the in-memory stores (``BOTS_FILE``)."""

    bots: list[Bot] = Field(default_factory=list)
    bot_keys: dict[str, str] = Field(default_factory=dict)
    owner_keys: dict[str, str] = Field(default_factory=dict)
