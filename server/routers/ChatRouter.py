from fastapi import APIRouter, Depends, Query

from server.dependencies.auth import verify_api_key
from server.dependencies.services import get_bot, get_services
from server.models.requests import ChatRequest
from server.models.responses import ChatResponse, HistoryClearResponse
from services.ServiceContainer import ServiceContainer
from shared.models.bot import Bot
from shared.models.conversation import ChatStatistics, ConversationHistory

router = APIRouter(prefix="/chat", tags=["chat"], dependencies=[Depends(verify_api_key)])


@router.post("/{bot_id}")
async def send_message(
    body: ChatRequest,
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> ChatResponse:
    """Answer one user message of a session.

    Args:
        body (ChatRequest): The message and the session it belongs to.
        bot (Bot): The bot from the path.
        services (ServiceContainer): Running services (app.state.services).

    Returns:
        ChatResponse: The assistant message with response type, token usage and sources.
    """
    message = await services.conversation_service.send_message(bot, body.message, body.session_id)
    return ChatResponse(bot_id=bot.id, session_id=body.session_id, message=message)


@router.get("/{bot_id}/history/{session_id}")
async def get_history(
    session_id: str,
    limit: int | None = Query(default=None, ge=1),
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> ConversationHistory:
    return await services.conversation_service.get_history(bot.id, session_id, limit=limit)


@router.delete("/{bot_id}/history/{session_id}")
async def clear_history(
    session_id: str,
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> HistoryClearResponse:
    cleared = await services.conversation_service.clear_history(bot.id, session_id)
    return HistoryClearResponse(bot_id=bot.id, session_id=session_id, cleared=cleared)


@router.get("/{bot_id}/statistics")
async def get_statistics(
    bot: Bot = Depends(get_bot),
    services: ServiceContainer = Depends(get_services),
) -> ChatStatistics:
    return await services.conversation_service.get_statistics(bot.id)
