"""Response schemas of the supported embedding backends."""

from pydantic import BaseModel


class OpenAIEmbeddingItem(BaseModel):
    embedding: list[float]
    index: int


class OpenAIUsage(BaseModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class OpenAIEmbeddingResponse(BaseModel):
    """Body of POST /v1/embeddings. ``data`` is not guaranteed to be in input order."""

    data: list[OpenAIEmbeddingItem]
    model: str | None = None
    usage: OpenAIUsage | None = None


class OllamaEmbeddingResponse(BaseModel):
    """Body of POST /api/embed. ``embeddings`` is already in input order."""

    embeddings: list[list[float]]
    model: str | None = None
    prompt_eval_count: int | None = None
