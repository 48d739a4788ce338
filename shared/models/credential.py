from enum import Enum

from pydantic import BaseModel


class CredentialSource(str, Enum):
    BOT_OWNER = "bot_owner"
    GLOBAL_FALLBACK = "global_fallback"


class ResolvedCredential(BaseModel):
    api_key: str
    source: CredentialSource


class CredentialCacheEntry(BaseModel):
    """A resolved credential together with the monotonic time it was resolved at."""

    bot_id: str
    credential: ResolvedCredential
    resolved_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.resolved_at < ttl
