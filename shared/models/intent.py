from enum import Enum

from pydantic import BaseModel, field_validator


class IntentType(str, Enum):
    NEEDS_RETRIEVAL = "NEEDS_RETRIEVAL"
    GENERAL_CHAT = "GENERAL_CHAT"
    SMALL_TALK = "SMALL_TALK"


# labels the classifier may answer with that map onto a known variant
INTENT_ALIASES: dict[str, IntentType] = {
    "NEEDS_RAG": IntentType.NEEDS_RETRIEVAL,
}


class IntentResult(BaseModel):
    type: IntentType
    confidence: float
    tokens_used: int = 0
    # error code of a credential the provider rejected during classification
    credential_error: str | None = None


class ClassifierResponse(BaseModel):
    """Raw JSON answer of the classifier model, before any routing decision."""

    type: str
    confidence: float

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        return value.strip().upper()
