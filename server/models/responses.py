from pydantic import BaseModel

from shared.models.conversation import Message


class ChatResponse(BaseModel):
    bot_id: str
    session_id: str
    message: Message


class DocumentDeleteResponse(BaseModel):
    document_id: str
    deleted_vectors: int


class HistoryClearResponse(BaseModel):
    bot_id: str
    session_id: str
    cleared: bool


class HealthResponse(BaseModel):
    status: str
    version: str
    vector_store: dict


class ErrorResponse(BaseModel):
    error_code: str
    detail: str
