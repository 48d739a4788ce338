"""
Unit tests for the FAQ matcher, the intent classifier and response dispatch.
"""

import asyncio

import pytest

from services.intent import prompts
from services.intent.FAQMatcher import FAQMatcher
from services.intent.IntentRouter import IntentRouter
from shared.helper.errors import InvalidCredentialError, ProviderUnavailableError
from shared.models.conversation import Message, ResponseType
from shared.models.intent import IntentResult, IntentType

CLASSIFIER = "gpt-3.5-turbo"


class TestFAQMatcher:
    """Tests for FAQMatcher.match."""

    @pytest.mark.parametrize("message,question", [
        ("Hello!", "greeting"),
        ("hi there", "greeting"),
        ("Thanks a lot", "thanks"),
        ("ok bye", "goodbye"),
    ])
    def test_system_faqs(self, bot, message, question):
        assert FAQMatcher().match(message, bot).question == question

    def test_keyword_inside_a_word_does_not_match(self, bot):
        """Test that "hi" in "this" is not a greeting."""
        assert FAQMatcher().match("this is great", bot) is None

    def test_long_message_skips_system_faqs(self, bot):
        """Test that a greeting in front of a real question goes to the classifier."""
        assert FAQMatcher().match("hello, what is your refund policy today?", bot) is None

    def test_bot_faq_matches_substring(self, bot):
        faq = FAQMatcher().match("Could you tell me your Opening Hours please, I need to know", bot)
        assert faq.answer == "We are open Monday to Friday, 9am to 5pm."

    def test_disabled_faq_is_skipped(self, bot):
        assert FAQMatcher().match("black friday deals", bot) is None

    def test_empty_message(self, bot):
        assert FAQMatcher().match("   ", bot) is None


class TestClassify:
    """Tests for IntentRouter.classify."""

    def classify(self, router: IntentRouter, bot, message: str = "Tell me something") -> IntentResult:
        return asyncio.run(router.classify(message, bot, "sk-owner"))

    def test_json_inside_surrounding_text(self, intent_router, llm_client, bot):
        """Test that the first JSON object is picked out of a chatty answer."""
        llm_client.replies[CLASSIFIER] = 'Sure! {"type": "small_talk", "confidence": 0.92} Hope that helps.'

        result = self.classify(intent_router, bot)

        assert result.type == IntentType.SMALL_TALK
        assert result.confidence == pytest.approx(0.92)
        assert result.tokens_used == 15

    def test_request_shape(self, intent_router, llm_client, bot):
        llm_client.replies[CLASSIFIER] = '{"type": "GENERAL_CHAT", "confidence": 0.9}'

        self.classify(intent_router, bot, "What can you do?")

        call = llm_client.calls_for(CLASSIFIER)[0]
        assert call["api_key"] == "sk-owner"
        assert call["temperature"] == 0.1
        assert call["json_mode"] is True
        assert call["messages"][-1] == {"role": "user", "content": "What can you do?"}
        assert bot.description in call["messages"][0]["content"]

    def test_unknown_label_defaults_to_retrieval(self, intent_router, llm_client, bot):
        llm_client.replies[CLASSIFIER] = '{"type": "WEATHER", "confidence": 0.99}'

        result = self.classify(intent_router, bot)

        assert result.type == IntentType.NEEDS_RETRIEVAL
        assert result.confidence == 0.5

    def test_low_confidence_defaults_to_retrieval(self, intent_router, llm_client, bot):
        """Test that the classifier's own confidence is kept on the fallback."""
        llm_client.replies[CLASSIFIER] = '{"type": "GENERAL_CHAT", "confidence": 0.4}'

        result = self.classify(intent_router, bot)

        assert result.type == IntentType.NEEDS_RETRIEVAL
        assert result.confidence == pytest.approx(0.4)

    def test_alias_label(self, intent_router, llm_client, bot):
        llm_client.replies[CLASSIFIER] = '{"type": "NEEDS_RAG", "confidence": 0.9}'
        assert self.classify(intent_router, bot).type == IntentType.NEEDS_RETRIEVAL

    @pytest.mark.parametrize("reply", [ProviderUnavailableError("503"), "I think it is small talk", '{"type": "SMALL_TALK"}'])
    def test_failures_default_to_retrieval(self, intent_router, llm_client, bot, reply):
        """Test that call errors and unparseable answers never raise."""
        llm_client.replies[CLASSIFIER] = reply

        result = self.classify(intent_router, bot)

        assert result.type == IntentType.NEEDS_RETRIEVAL
        assert result.confidence == 0.0
        assert result.credential_error is None

    def test_rejected_credential_is_reported(self, intent_router, llm_client, bot):
        llm_client.replies[CLASSIFIER] = InvalidCredentialError("401")

        result = self.classify(intent_router, bot)

        assert result.type == IntentType.NEEDS_RETRIEVAL
        assert result.credential_error == "INVALID_KEY"


class TestDispatch:
    """Tests for IntentRouter.dispatch."""

    def test_small_talk_needs_no_model(self, intent_router, llm_client, bot):
        intent = IntentResult(type=IntentType.SMALL_TALK, confidence=0.95)

        response = asyncio.run(intent_router.dispatch(intent, bot, "nice weather", [], "sk-owner"))

        assert response.content == prompts.SMALL_TALK_RESPONSES[0]
        assert response.response_type == ResponseType.SMALL_TALK
        assert response.tokens_used == 0
        assert llm_client.calls == []

    def test_general_chat_uses_history(self, intent_router, llm_client, bot):
        """Test that general chat sends the last five messages and no retrieval context."""
        llm_client.replies["gpt-4.1-mini"] = "  I can help with orders.  "
        history = [Message(role="user" if i % 2 == 0 else "assistant", content=f"m{i}") for i in range(8)]
        intent = IntentResult(type=IntentType.GENERAL_CHAT, confidence=0.9)

        response = asyncio.run(intent_router.dispatch(intent, bot, "What can you do?", history, "sk-owner"))

        assert response.content == "I can help with orders."
        assert response.response_type == ResponseType.SIMPLE_LLM
        assert response.tokens_used == 15
        sent = llm_client.calls_for("gpt-4.1-mini")[0]["messages"]
        assert [m["content"] for m in sent[1:-1]] == ["m3", "m4", "m5", "m6", "m7"]

    def test_retrieval_without_context_falls_back(self, intent_router, llm_client, bot):
        intent = IntentResult(type=IntentType.NEEDS_RETRIEVAL, confidence=0.9)

        response = asyncio.run(intent_router.dispatch(intent, bot, "What is your refund policy?", [], "sk-owner"))

        assert response.response_type == ResponseType.FALLBACK
        assert response.content == prompts.NO_CONTEXT_RESPONSE
        assert llm_client.calls == []


class TestPrompts:
    """Tests for prompt helpers."""

    def test_chat_history_formatting(self):
        history = [Message(role="user", content="hi"), Message(role="assistant", content="hello")]
        assert prompts.format_chat_history(history) == "USER: hi\nASSISTANT: hello"

    def test_empty_history(self):
        assert prompts.format_chat_history([]) == prompts.NO_HISTORY

    def test_faq_context_lists_enabled_faqs_only(self, bot):
        context = prompts.build_faq_context(bot)

        assert "1. Q: Opening hours" in context
        assert "black friday" not in context.lower()
