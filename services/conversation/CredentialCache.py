import asyncio
import time
from typing import Callable

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import NoCredentialError
from shared.models.credential import CredentialCacheEntry, CredentialSource, ResolvedCredential
from shared.models.settings import PipelineSettings
from shared.stores.CredentialStore import CredentialStoreInterface


class CredentialCache:
    """Per-bot cache of resolved provider credentials with a fixed TTL.

    Expired entries are never served. At most one lookup per bot is in
    flight; concurrent callers for the same bot wait for it and share the
    result, callers for other bots are not blocked.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        credential_store: CredentialStoreInterface,
        settings: PipelineSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = credential_store
        self._settings = settings or PipelineSettings.from_config(helper_config)
        self._clock = clock
        self._entries: dict[str, CredentialCacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def ttl(self) -> float:
        return self._settings.credential_cache_ttl

    def _fresh_entry(self, bot_id: str) -> CredentialCacheEntry | None:
        entry = self._entries.get(bot_id)
        if entry and entry.is_fresh(self._clock(), self.ttl):
            return entry
        return None

    async def get(self, bot_id: str, owner_id: str) -> ResolvedCredential:
        """Return the bot's credential, resolving it if there is no fresh entry.

        Raises:
            NoCredentialError: If neither the owner nor the global configuration has a key.
        """
        entry = self._fresh_entry(bot_id)
        if entry:
            return entry.credential

        lock = self._locks.setdefault(bot_id, asyncio.Lock())
        async with lock:
            # another caller may have refreshed while we waited
            entry = self._fresh_entry(bot_id)
            if entry:
                return entry.credential
            credential = await self._resolve(bot_id, owner_id)
            self._entries[bot_id] = CredentialCacheEntry(bot_id=bot_id, credential=credential, resolved_at=self._clock())
            return credential

    async def _resolve(self, bot_id: str, owner_id: str) -> ResolvedCredential:
        try:
            api_key = await self._store.get_credential(bot_id, owner_id)
        except Exception as e:
            self.logging.warning("Credential lookup for bot '%s' failed: %s", bot_id, e)
            api_key = None

        if api_key:
            self.logging.debug("Resolved owner credential for bot '%s'.", bot_id)
            return ResolvedCredential(api_key=api_key, source=CredentialSource.BOT_OWNER)

        if self._settings.global_provider_api_key:
            self.logging.info("Bot '%s' has no credential of its own, using the global key.", bot_id)
            return ResolvedCredential(api_key=self._settings.global_provider_api_key, source=CredentialSource.GLOBAL_FALLBACK)

        raise NoCredentialError(
            f"No provider API key available for bot '{bot_id}'. Configure a key for the bot owner or set GLOBAL_PROVIDER_API_KEY."
        )

    def clear(self, bot_id: str | None = None) -> None:
        """Drop the entry of one bot, or all entries if bot_id is None."""
        if bot_id is None:
            self._entries.clear()
            self.logging.info("Cleared all cached credentials.")
        else:
            self._entries.pop(bot_id, None)
            self.logging.info("Cleared cached credential for bot '%s'.", bot_id)
