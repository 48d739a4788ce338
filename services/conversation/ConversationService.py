"""Conversation orchestrator.

Answers one user message: FAQ shortcut, credential, intent, response
strategy, transcript write and usage counters, in that order. The caller
always receives an assistant message unless the input is invalid or no
credential can be found.
"""

import time
from typing import Callable

from services.conversation.CredentialCache import CredentialCache
from services.intent import prompts
from services.intent.IntentRouter import IntentRouter
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import CredentialError, ValidationError
from shared.models.bot import Bot
from shared.models.conversation import (
    ChatStatistics,
    ConversationHistory,
    ConversationSession,
    GeneratedResponse,
    Message,
    MessageMetadata,
    ResponseType,
)
from shared.models.intent import IntentResult, IntentType
from shared.models.passage import utc_now
from shared.models.settings import PipelineSettings
from shared.stores.BotStore import BotStoreInterface
from shared.stores.ConversationStore import ConversationStoreInterface


class ConversationService:
    def __init__(
        self,
        helper_config: HelperConfig,
        intent_router: IntentRouter,
        credential_cache: CredentialCache,
        conversation_store: ConversationStoreInterface,
        bot_store: BotStoreInterface,
        settings: PipelineSettings | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._router = intent_router
        self._credentials = credential_cache
        self._conversations = conversation_store
        self._bots = bot_store
        self._settings = settings or PipelineSettings.from_config(helper_config)
        self._clock = clock

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_message(self, bot: Bot | None, user_message: str, session_id: str) -> str:
        if bot is None:
            raise ValidationError("A bot is required.")
        if not session_id or not str(session_id).strip():
            raise ValidationError("A session id is required.")
        if not isinstance(user_message, str) or not user_message.strip():
            raise ValidationError("Message must be a non-empty string.")
        message = user_message.strip()
        if len(message) > self._settings.max_message_length:
            raise ValidationError(
                f"Message is too long ({len(message)} characters, maximum {self._settings.max_message_length})."
            )
        return message

    ##########################################
    ################# CORE ###################
    ##########################################

    async def send_message(self, bot: Bot, user_message: str, session_id: str) -> Message:
        """Answer a user message and persist both messages.

        Args:
            bot (Bot): The bot being talked to.
            user_message (str): The user's message.
            session_id (str): Session the message belongs to, created on first use.

        Returns:
            Message: The assistant message, tagged with response type, token usage and latency.

        Raises:
            ValidationError: If the bot, session id or message is invalid.
            NoCredentialError: If no provider credential can be resolved for the bot.
        """
        message = self.validate_message(bot, user_message, session_id)
        started = self._clock()

        session = await self._conversations.load_session(bot.id, session_id)
        if session is None:
            session = ConversationSession(bot_id=bot.id, session_id=session_id)
        history = list(session.messages)

        classifier_tokens = 0
        faq = self._router.match_faq(message, bot)
        if faq:
            user_msg = self._user_message(message, IntentType.GENERAL_CHAT, 1.0)
            response = GeneratedResponse(
                content=faq.answer,
                response_type=ResponseType.FAQ,
                tokens_used=0,
                model="faq",
                has_relevant_context=False,
            )
        else:
            credential = await self._credentials.get(bot.id, bot.owner_id)
            intent = await self._router.classify(message, bot, credential.api_key)
            classifier_tokens = intent.tokens_used
            user_msg = self._user_message(message, intent.type, intent.confidence)
            if intent.credential_error:
                response = self._credential_rejected(bot.id, intent.credential_error)
            else:
                response = await self._generate(intent, bot, message, history, credential.api_key)

        latency_ms = int((self._clock() - started) * 1000)
        assistant_msg = Message(
            role="assistant",
            content=response.content,
            metadata=MessageMetadata(
                response_type=response.response_type,
                tokens_used=response.tokens_used,
                latency_ms=latency_ms,
                model=response.model,
                has_relevant_context=response.has_relevant_context,
                sources=response.sources,
                error_code=response.error_code,
            ),
        )

        session.messages.extend([user_msg, assistant_msg])
        session.updated_at = utc_now()
        await self._conversations.save_session(session)

        await self._update_usage(bot.id, response, classifier_tokens)

        self.logging.info(
            "Answered message for bot '%s' session '%s' via %s in %d ms (%d tokens).",
            bot.id, session_id, response.response_type.value, latency_ms, response.tokens_used,
        )
        return assistant_msg

    async def _generate(self, intent: IntentResult, bot: Bot, message: str, history: list[Message], credential: str) -> GeneratedResponse:
        try:
            return await self._router.dispatch(intent, bot, message, history, credential)
        except CredentialError as e:
            self.logging.error("Provider rejected the credential of bot '%s': %s", bot.id, e)
            return self._credential_rejected(bot.id, e.error_code)
        except Exception as e:
            self.logging.error("Response generation failed for bot '%s': %s", bot.id, e)
            return GeneratedResponse(
                content=prompts.GENERATION_ERROR_RESPONSE,
                response_type=ResponseType.ERROR,
                tokens_used=0,
                model=None,
                has_relevant_context=False,
                error_code="GENERATION_FAILED",
            )

    def _credential_rejected(self, bot_id: str, error_code: str) -> GeneratedResponse:
        # force a fresh lookup on the next message
        self._credentials.clear(bot_id)
        return GeneratedResponse(
            content=prompts.INVALID_CREDENTIAL_RESPONSE,
            response_type=ResponseType.ERROR,
            tokens_used=0,
            model=None,
            has_relevant_context=False,
            error_code=error_code,
        )

    @staticmethod
    def _user_message(content: str, intent_type: IntentType, confidence: float) -> Message:
        return Message(
            role="user",
            content=content,
            metadata=MessageMetadata(intent_type=intent_type, intent_confidence=confidence),
        )

    async def _update_usage(self, bot_id: str, response: GeneratedResponse, extra_tokens: int) -> None:
        counters = {
            "total_messages": 1,
            "total_tokens_used": response.tokens_used + extra_tokens,
        }
        if response.response_type == ResponseType.RAG:
            counters["relevant_responses"] = 1
        elif response.response_type == ResponseType.FALLBACK:
            counters["fallback_responses"] = 1
        try:
            await self._bots.increment_usage(bot_id, **counters)
        except Exception as e:
            self.logging.warning("Could not update usage counters for bot '%s': %s", bot_id, e)

    ##########################################
    ################ HISTORY #################
    ##########################################

    async def get_history(self, bot_id: str, session_id: str, limit: int | None = None) -> ConversationHistory:
        """Most recent messages of a session, oldest first. An unknown session has an empty history."""
        if not bot_id or not session_id:
            raise ValidationError("Bot id and session id are required.")
        limit = self._settings.history_limit if limit is None else limit
        session = await self._conversations.load_session(bot_id, session_id)
        if session is None:
            return ConversationHistory(bot_id=bot_id, session_id=session_id, messages=[], total_messages=0)
        messages = session.messages[-limit:] if limit else session.messages
        return ConversationHistory(
            bot_id=bot_id,
            session_id=session_id,
            messages=messages,
            total_messages=len(session.messages),
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

    async def clear_history(self, bot_id: str, session_id: str) -> bool:
        """Empty a session's messages. Returns False if the session does not exist."""
        if not bot_id or not session_id:
            raise ValidationError("Bot id and session id are required.")
        session = await self._conversations.load_session(bot_id, session_id)
        if session is None:
            return False
        session.messages = []
        session.updated_at = utc_now()
        await self._conversations.save_session(session)
        self.logging.info("Cleared conversation history for bot '%s' session '%s'.", bot_id, session_id)
        return True

    def clear_credential_cache(self, bot_id: str | None = None) -> None:
        self._credentials.clear(bot_id)

    async def get_statistics(self, bot_id: str) -> ChatStatistics:
        sessions = await self._conversations.list_sessions(bot_id)
        usage = await self._bots.get_usage(bot_id)
        total_messages = sum(len(s.messages) for s in sessions)
        return ChatStatistics(
            bot_id=bot_id,
            total_conversations=len(sessions),
            total_messages=total_messages,
            total_tokens_used=usage.total_tokens_used,
            relevant_responses=usage.relevant_responses,
            fallback_responses=usage.fallback_responses,
            average_messages_per_conversation=round(total_messages / len(sessions), 2) if sessions else 0.0,
        )
