"""Response strategies, one per intent variant."""

import random
from typing import Callable

from services.intent import prompts
from services.retrieval.RetrievalService import RetrievalService
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot
from shared.models.conversation import GeneratedResponse, Message, ResponseType
from shared.models.settings import PipelineSettings

RAG_HISTORY_LIMIT = 10
GENERAL_CHAT_HISTORY_LIMIT = 5


class ResponseGenerator:
    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        retrieval_service: RetrievalService,
        settings: PipelineSettings | None = None,
        small_talk_picker: Callable[[list[str]], str] = random.choice,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self._retrieval = retrieval_service
        self._settings = settings or PipelineSettings.from_config(helper_config)
        self._pick = small_talk_picker

    async def generate_grounded(self, bot: Bot, message: str, history: list[Message], credential: str) -> GeneratedResponse:
        """Retrieve context and answer from it. Without context, answer with the canned no-information response.

        Args:
            history (list[Message]): Earlier messages of the session, without the current one.
        """
        result = await self._retrieval.retrieve(bot.id, message, credential=credential)
        if result.is_empty:
            self.logging.info("No relevant context for bot '%s', using fallback response.", bot.id)
            return GeneratedResponse(
                content=prompts.NO_CONTEXT_RESPONSE,
                response_type=ResponseType.FALLBACK,
                tokens_used=0,
                model="fallback",
                has_relevant_context=False,
            )

        system_prompt = prompts.RAG_SYSTEM_PROMPT.format(
            bot_name=bot.name,
            bot_description=bot.description or "",
            context=self._retrieval.format_context(result),
            chat_history=prompts.format_chat_history(history, limit=RAG_HISTORY_LIMIT),
            faq_context=prompts.build_faq_context(bot),
        )
        completion = await self._llm_client.do_chat(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": message},
            ],
            api_key=credential,
            model=self._settings.chat_model,
            temperature=0.3,
            max_tokens=1000,
        )
        return GeneratedResponse(
            content=completion.content.strip(),
            response_type=ResponseType.RAG,
            tokens_used=completion.total_tokens,
            model=completion.model or self._settings.chat_model,
            has_relevant_context=True,
            sources=self._retrieval.sources(result),
        )

    async def generate_general(self, bot: Bot, message: str, history: list[Message], credential: str) -> GeneratedResponse:
        """Answer with the bot description as the only grounding, no retrieval."""
        system_prompt = prompts.GENERAL_CHAT_SYSTEM_PROMPT.format(
            bot_name=bot.name,
            bot_description=bot.description or "",
            faq_context=prompts.build_faq_context(bot),
        )
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m.role, "content": m.content} for m in history[-GENERAL_CHAT_HISTORY_LIMIT:])
        messages.append({"role": "user", "content": message})

        completion = await self._llm_client.do_chat(
            messages,
            api_key=credential,
            model=self._settings.simple_chat_model,
            temperature=0.7,
            max_tokens=300,
        )
        return GeneratedResponse(
            content=completion.content.strip(),
            response_type=ResponseType.SIMPLE_LLM,
            tokens_used=completion.total_tokens,
            model=completion.model or self._settings.simple_chat_model,
            has_relevant_context=False,
        )

    def generate_small_talk(self, bot: Bot, message: str) -> GeneratedResponse:
        return GeneratedResponse(
            content=self._pick(prompts.SMALL_TALK_RESPONSES),
            response_type=ResponseType.SMALL_TALK,
            tokens_used=0,
            model="predefined",
            has_relevant_context=False,
        )
