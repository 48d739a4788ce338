from dataclasses import dataclass
from pathlib import Path

from services.chunking.ChunkerService import ChunkerService
from services.conversation.ConversationService import ConversationService
from services.conversation.CredentialCache import CredentialCache
from services.embedding.EmbeddingService import EmbeddingService
from services.ingestion.IngestionService import IngestionService
from services.intent.IntentRouter import IntentRouter
from services.intent.ResponseGenerator import ResponseGenerator
from services.retrieval.RetrievalService import RetrievalService
from services.vector_store.VectorStoreService import VectorStoreService
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import BotRegistry
from shared.models.settings import PipelineSettings
from shared.stores.BotStore import BotStoreInterface, InMemoryBotStore
from shared.stores.ConversationStore import ConversationStoreInterface, InMemoryConversationStore
from shared.stores.CredentialStore import CredentialStoreInterface, InMemoryCredentialStore
from shared.stores.DocumentStore import DocumentStoreInterface, InMemoryDocumentStore


@dataclass
class ServiceContainer:
    """All clients, stores and services of one running instance."""

    helper_config: HelperConfig
    settings: PipelineSettings
    embed_client: EmbedClientInterface
    llm_client: LLMClientInterface
    rag_client: RAGClientInterface
    bot_store: BotStoreInterface
    credential_store: CredentialStoreInterface
    conversation_store: ConversationStoreInterface
    document_store: DocumentStoreInterface
    chunker: ChunkerService
    embedding_service: EmbeddingService
    vector_store: VectorStoreService
    retrieval_service: RetrievalService
    credential_cache: CredentialCache
    intent_router: IntentRouter
    conversation_service: ConversationService
    ingestion_service: IngestionService

    @property
    def clients(self) -> list[ClientInterface]:
        return [self.embed_client, self.llm_client, self.rag_client]

    async def boot(self) -> None:
        for client in self.clients:
            await client.boot()

    async def close(self) -> None:
        for client in self.clients:
            await client.close()


def load_registry(helper_config: HelperConfig) -> BotRegistry:
    """Read the bot seed file named by BOTS_FILE. No file configured means no bots."""
    path = helper_config.get_optional_string_val("BOTS_FILE")
    if not path:
        return BotRegistry()
    registry = BotRegistry.model_validate_json(Path(path).read_text(encoding="utf-8"))
    helper_config.get_logger().info("Loaded %d bots from '%s'.", len(registry.bots), path)
    return registry


def build_container(
    helper_config: HelperConfig,
    settings: PipelineSettings | None = None,
    embed_client: EmbedClientInterface | None = None,
    llm_client: LLMClientInterface | None = None,
    rag_client: RAGClientInterface | None = None,
    bot_store: BotStoreInterface | None = None,
    credential_store: CredentialStoreInterface | None = None,
    conversation_store: ConversationStoreInterface | None = None,
    document_store: DocumentStoreInterface | None = None,
    chunker: ChunkerService | None = None,
) -> ServiceContainer:
    """Wire every service. Clients come from the engine managers and stores are in-memory unless given."""
    settings = settings or PipelineSettings.from_config(helper_config)
    embed_client = embed_client or EmbedClientManager(helper_config).get_client()
    llm_client = llm_client or LLMClientManager(helper_config).get_client()
    rag_client = rag_client or RAGClientManager(helper_config).get_client()

    if bot_store is None or credential_store is None:
        registry = load_registry(helper_config)
        bot_store = bot_store or InMemoryBotStore(registry.bots)
        credential_store = credential_store or InMemoryCredentialStore(registry.bot_keys, registry.owner_keys)
    conversation_store = conversation_store or InMemoryConversationStore()
    document_store = document_store or InMemoryDocumentStore()

    chunker = chunker or ChunkerService(helper_config, settings=settings)
    embedding_service = EmbeddingService(helper_config, embed_client, settings=settings)
    vector_store = VectorStoreService(helper_config, rag_client, settings=settings)
    retrieval_service = RetrievalService(helper_config, vector_store, embedding_service, settings=settings)
    credential_cache = CredentialCache(helper_config, credential_store, settings=settings)
    response_generator = ResponseGenerator(helper_config, llm_client, retrieval_service, settings=settings)
    intent_router = IntentRouter(helper_config, llm_client, response_generator, settings=settings)
    conversation_service = ConversationService(
        helper_config, intent_router, credential_cache, conversation_store, bot_store, settings=settings
    )
    ingestion_service = IngestionService(
        helper_config, chunker, embedding_service, vector_store, credential_cache, document_store, bot_store
    )

    return ServiceContainer(
        helper_config=helper_config,
        settings=settings,
        embed_client=embed_client,
        llm_client=llm_client,
        rag_client=rag_client,
        bot_store=bot_store,
        credential_store=credential_store,
        conversation_store=conversation_store,
        document_store=document_store,
        chunker=chunker,
        embedding_service=embedding_service,
        vector_store=vector_store,
        retrieval_service=retrieval_service,
        credential_cache=credential_cache,
        intent_router=intent_router,
        conversation_service=conversation_service,
        ingestion_service=ingestion_service,
    )
