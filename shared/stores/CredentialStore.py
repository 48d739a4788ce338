from abc import ABC, abstractmethod


class CredentialStoreInterface(ABC):
    """Lookup of the provider API key a bot owner has configured."""

    @abstractmethod
    async def get_credential(self, bot_id: str, owner_id: str) -> str | None:
        """
        Returns:
            str | None: The key, or None if the owner has not configured one.

        Raises:
            Exception: If the lookup itself fails.
        """
        pass


class InMemoryCredentialStore(CredentialStoreInterface):
    """Keys registered per bot, falling back to keys registered per owner."""

    def __init__(self, bot_keys: dict[str, str] | None = None, owner_keys: dict[str, str] | None = None) -> None:
        self._bot_keys = dict(bot_keys or {})
        self._owner_keys = dict(owner_keys or {})

    def set_bot_key(self, bot_id: str, api_key: str) -> None:
        self._bot_keys[bot_id] = api_key

    async def get_credential(self, bot_id: str, owner_id: str) -> str | None:
        return self._bot_keys.get(bot_id) or self._owner_keys.get(owner_id)
