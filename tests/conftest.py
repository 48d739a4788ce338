"""
Shared test fixtures and configuration for pytest.
"""

import logging

import pytest

from services.chunking.ChunkerService import ChunkerService
from services.conversation.ConversationService import ConversationService
from services.conversation.CredentialCache import CredentialCache
from services.embedding.EmbeddingService import EmbeddingService
from services.intent.IntentRouter import IntentRouter
from services.intent.ResponseGenerator import ResponseGenerator
from services.retrieval.RetrievalService import RetrievalService
from services.vector_store.VectorStoreService import VectorStoreService
from shared.helper.HelperConfig import HelperConfig
from shared.helper.RetryPolicy import RetryPolicy
from shared.logging.logging_setup import ColorLogger
from shared.models.bot import FAQ, Bot
from shared.models.settings import PipelineSettings
from shared.stores.BotStore import InMemoryBotStore
from shared.stores.ConversationStore import InMemoryConversationStore
from tests.fakes import (
    CountingCredentialStore,
    FakeEmbedClient,
    FakeLLMClient,
    FakeRAGClient,
    RecordingSleep,
)


def word_count(text: str) -> int:
    return len(text.split())


# ============================================================================
# Configuration
# ============================================================================

@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("kb_chat.tests")))


@pytest.fixture
def settings() -> PipelineSettings:
    """Defaults with all waiting switched off."""
    return PipelineSettings(
        embed_retry_delay=0.0,
        embed_inter_batch_delay=0.0,
        retrieval_timeout=5.0,
    )


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_delay=0.0)


# ============================================================================
# Domain objects
# ============================================================================

@pytest.fixture
def bot() -> Bot:
    return Bot(
        id="support-bot",
        name="Support Bot",
        owner_id="owner-1",
        description="Answers questions about orders, shipping and refunds.",
        faqs=[
            FAQ(
                question="Opening hours",
                keywords=["opening hours", "when are you open"],
                answer="We are open Monday to Friday, 9am to 5pm.",
            ),
            FAQ(
                question="Old promotion",
                keywords=["black friday"],
                answer="The promotion has ended.",
                enabled=False,
            ),
        ],
    )


# ============================================================================
# Fakes and services
# ============================================================================

@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def rag_client() -> FakeRAGClient:
    return FakeRAGClient()


@pytest.fixture
def credential_store(bot) -> CountingCredentialStore:
    return CountingCredentialStore(owner_keys={bot.owner_id: "sk-owner"})


@pytest.fixture
def bot_store(bot) -> InMemoryBotStore:
    return InMemoryBotStore([bot])


@pytest.fixture
def conversation_store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def chunker(helper_config, settings) -> ChunkerService:
    return ChunkerService(helper_config, settings=settings, token_counter=word_count)


@pytest.fixture
def embedding_service(helper_config, embed_client, settings) -> EmbeddingService:
    return EmbeddingService(helper_config, embed_client, settings=settings, sleep=RecordingSleep())


@pytest.fixture
def vector_store(helper_config, rag_client, settings, fast_retry) -> VectorStoreService:
    return VectorStoreService(helper_config, rag_client, settings=settings, retry_policy=fast_retry)


@pytest.fixture
def retrieval_service(helper_config, vector_store, embedding_service, settings) -> RetrievalService:
    return RetrievalService(helper_config, vector_store, embedding_service, settings=settings)


@pytest.fixture
def credential_cache(helper_config, credential_store, settings) -> CredentialCache:
    return CredentialCache(helper_config, credential_store, settings=settings)


@pytest.fixture
def response_generator(helper_config, llm_client, retrieval_service, settings) -> ResponseGenerator:
    return ResponseGenerator(
        helper_config, llm_client, retrieval_service, settings=settings, small_talk_picker=lambda options: options[0]
    )


@pytest.fixture
def intent_router(helper_config, llm_client, response_generator, settings) -> IntentRouter:
    return IntentRouter(helper_config, llm_client, response_generator, settings=settings)


@pytest.fixture
def conversation_service(
    helper_config, intent_router, credential_cache, conversation_store, bot_store, settings
) -> ConversationService:
    return ConversationService(
        helper_config, intent_router, credential_cache, conversation_store, bot_store, settings=settings
    )
