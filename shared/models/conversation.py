from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from shared.models.intent import IntentType
from shared.models.passage import utc_now
from shared.models.retrieval import SourceReference


class ResponseType(str, Enum):
    FAQ = "faq"
    RAG = "rag"
    SIMPLE_LLM = "simple_llm"
    SMALL_TALK = "small_talk"
    FALLBACK = "fallback"
    ERROR = "error"


class MessageMetadata(BaseModel):
    """Tags attached to a message. User messages carry intent fields, assistant messages the rest."""

    intent_type: IntentType | None = None
    intent_confidence: float | None = None
    response_type: ResponseType | None = None
    tokens_used: int = 0
    latency_ms: int = 0
    model: str | None = None
    has_relevant_context: bool | None = None
    sources: list[SourceReference] = Field(default_factory=list)
    error_code: str | None = None


class Message(BaseModel):
    role: str
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)


class ConversationSession(BaseModel):
    """Ordered transcript of one session with one bot. Append-only except for explicit clears."""

    bot_id: str
    session_id: str
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class GeneratedResponse(BaseModel):
    """Output of one response strategy before it becomes an assistant message."""

    content: str
    response_type: ResponseType
    tokens_used: int = 0
    model: str | None = None
    has_relevant_context: bool = False
    sources: list[SourceReference] = Field(default_factory=list)
    error_code: str | None = None


class ConversationHistory(BaseModel):
    bot_id: str
    session_id: str
    messages: list[Message]
    total_messages: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChatStatistics(BaseModel):
    bot_id: str
    total_conversations: int = 0
    total_messages: int = 0
    total_tokens_used: int = 0
    relevant_responses: int = 0
    fallback_responses: int = 0
    average_messages_per_conversation: float = 0.0
