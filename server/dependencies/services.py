from fastapi import HTTPException, Request

from services.ServiceContainer import ServiceContainer
from shared.models.bot import Bot


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def get_bot(request: Request, bot_id: str) -> Bot:
    """Resolve the bot named in the path.

    Raises:
        HTTPException: 404 if the bot is unknown.
    """
    bot = await get_services(request).bot_store.get_bot(bot_id)
    if bot is None:
        raise HTTPException(status_code=404, detail=f"Bot '{bot_id}' not found")
    return bot
