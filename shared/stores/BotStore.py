import asyncio
from abc import ABC, abstractmethod

from shared.models.bot import Bot, BotUsage


class BotStoreInterface(ABC):
    """Read access to bot records plus their aggregate usage counters."""

    @abstractmethod
    async def get_bot(self, bot_id: str) -> Bot | None:
        pass

    @abstractmethod
    async def increment_usage(self, bot_id: str, **counters: int) -> None:
        """Add the given amounts to the named BotUsage counters."""
        pass

    @abstractmethod
    async def get_usage(self, bot_id: str) -> BotUsage:
        pass


class InMemoryBotStore(BotStoreInterface):
    def __init__(self, bots: list[Bot] | None = None) -> None:
        self._bots: dict[str, Bot] = {bot.id: bot for bot in bots or []}
        self._usage: dict[str, BotUsage] = {}
        self._lock = asyncio.Lock()

    async def get_bot(self, bot_id: str) -> Bot | None:
        return self._bots.get(bot_id)

    async def increment_usage(self, bot_id: str, **counters: int) -> None:
        async with self._lock:
            usage = self._usage.setdefault(bot_id, BotUsage())
            for name, amount in counters.items():
                if name not in BotUsage.model_fields:
                    raise KeyError(f"Unknown usage counter '{name}'")
                setattr(usage, name, getattr(usage, name) + amount)

    async def get_usage(self, bot_id: str) -> BotUsage:
        async with self._lock:
            return self._usage.get(bot_id, BotUsage()).model_copy()
