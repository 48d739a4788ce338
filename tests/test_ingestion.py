"""
Unit tests for the ingestion pipeline.
"""

import asyncio

import pytest

from services.conversation.CredentialCache import CredentialCache
from services.ingestion.IngestionService import IngestionService, validate_text
from services.vector_store.VectorStoreService import VectorStoreService
from shared.helper.RetryPolicy import RetryPolicy
from shared.helper.errors import (
    EmptyInputError,
    IngestionError,
    NoCredentialError,
    ProviderUnavailableError,
    ValidationError,
)
from shared.models.bot import DocumentRecord, DocumentStatus
from shared.models.passage import ChunkOptions
from shared.models.settings import PipelineSettings
from shared.stores.DocumentStore import InMemoryDocumentStore
from tests.fakes import CountingCredentialStore, FakeRAGClient

REFUND_TEXT = "Refunds are issued within 30 days of purchase. Shipping is free."


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def ingestion_service(
    helper_config, chunker, embedding_service, vector_store, credential_cache, document_store, bot_store
) -> IngestionService:
    return IngestionService(
        helper_config, chunker, embedding_service, vector_store, credential_cache, document_store, bot_store
    )


@pytest.fixture
def document(bot) -> DocumentRecord:
    return DocumentRecord(id="doc-1", bot_id=bot.id, name="refunds.md", content_type="markdown")


class TestValidateText:
    """Tests for validate_text."""

    def test_empty(self):
        with pytest.raises(EmptyInputError):
            validate_text("  \n ")

    @pytest.mark.parametrize("text", ["too short", "Supercalifragilistic expialidocious"])
    def test_too_short_or_too_few_words(self, text):
        with pytest.raises(ValidationError):
            validate_text(text)

    def test_valid(self):
        validate_text(REFUND_TEXT)


class TestIngestDocument:
    """Tests for IngestionService.ingest_document."""

    def test_success(self, ingestion_service, document, document_store, rag_client, embed_client, bot, bot_store):
        record = asyncio.run(ingestion_service.ingest_document(bot, document, REFUND_TEXT))

        assert record.status == DocumentStatus.COMPLETED
        assert record.total_chunks == 1
        assert record.total_tokens == 11
        assert record.size_bytes == len(REFUND_TEXT.encode("utf-8"))
        assert record.processed_at is not None
        assert len(record.vector_ids) == 1
        assert embed_client.calls[0]["api_key"] == "sk-owner"

        stored = asyncio.run(document_store.get_document(bot.id, "doc-1"))
        assert stored.status == DocumentStatus.COMPLETED
        payload = rag_client.points(bot.id)[0]["payload"]
        assert payload["document_id"] == "doc-1"
        assert payload["document_name"] == "refunds.md"

        usage = asyncio.run(bot_store.get_usage(bot.id))
        assert usage.total_embeddings == 1
        assert usage.file_count == 1
        assert usage.storage_used == record.size_bytes

    def test_invalid_text_marks_document_failed(self, ingestion_service, document, document_store, embed_client, bot):
        with pytest.raises(IngestionError) as exc_info:
            asyncio.run(ingestion_service.ingest_document(bot, document, "too short"))

        assert isinstance(exc_info.value.cause, ValidationError)
        assert exc_info.value.document_id == "doc-1"
        stored = asyncio.run(document_store.get_document(bot.id, "doc-1"))
        assert stored.status == DocumentStatus.FAILED
        assert "too short" in stored.processing_error
        assert embed_client.calls == []

    def test_missing_credential_propagates(
        self, helper_config, chunker, embedding_service, vector_store, document_store, bot_store, settings, document, bot
    ):
        """Test that a credential error is raised as is, not wrapped."""
        cache = CredentialCache(helper_config, CountingCredentialStore(), settings=settings)
        service = IngestionService(helper_config, chunker, embedding_service, vector_store, cache, document_store, bot_store)

        with pytest.raises(NoCredentialError):
            asyncio.run(service.ingest_document(bot, document, REFUND_TEXT))

        assert asyncio.run(document_store.get_document(bot.id, "doc-1")).status == DocumentStatus.FAILED

    def test_failed_write_purges_partial_vectors(
        self, helper_config, chunker, embedding_service, credential_cache, document_store, bot_store, document, bot
    ):
        """Test that vectors of batches written before the failure are removed."""
        rag_client = FakeRAGClient(upsert_errors=[None, ProviderUnavailableError("503")])
        vector_store = VectorStoreService(
            helper_config,
            rag_client,
            settings=PipelineSettings(upsert_batch_size=1),
            retry_policy=RetryPolicy(max_attempts=1, initial_delay=0.0),
        )
        service = IngestionService(
            helper_config, chunker, embedding_service, vector_store, credential_cache, document_store, bot_store
        )
        text = "Refunds are issued within 30 days of purchase.\n\nShipping takes three to five business days."

        with pytest.raises(IngestionError):
            asyncio.run(service.ingest_document(bot, document, text, options=ChunkOptions(max_chunk_size=50, overlap=0)))

        assert len(rag_client.upsert_calls) == 2
        assert rag_client.points(bot.id) == []
        assert asyncio.run(document_store.get_document(bot.id, "doc-1")).status == DocumentStatus.FAILED

    def test_custom_chunk_options(self, ingestion_service, document, bot):
        text = "Refunds are issued within 30 days of purchase.\n\nShipping takes three to five business days."

        record = asyncio.run(ingestion_service.ingest_document(bot, document, text, options=ChunkOptions(max_chunk_size=50, overlap=0)))

        assert record.total_chunks == 2


class TestIngestFile:
    """Tests for IngestionService.ingest_file."""

    def test_plain_text_file(self, ingestion_service, document, bot):
        record = asyncio.run(ingestion_service.ingest_file(bot, document, REFUND_TEXT.encode("utf-8"), "text/plain; charset=utf-8"))
        assert record.status == DocumentStatus.COMPLETED

    def test_unsupported_type(self, ingestion_service, document, document_store, bot):
        with pytest.raises(IngestionError):
            asyncio.run(ingestion_service.ingest_file(bot, document, b"%PDF-1.7", "application/pdf"))

        stored = asyncio.run(document_store.get_document(bot.id, "doc-1"))
        assert stored.status == DocumentStatus.FAILED
        assert stored.processing_error.startswith("Text extraction failed")


class TestDeleteDocument:
    """Tests for IngestionService.delete_document."""

    def test_delete_removes_vectors_and_record(self, ingestion_service, document, document_store, rag_client, bot):
        asyncio.run(ingestion_service.ingest_document(bot, document, REFUND_TEXT))

        deleted = asyncio.run(ingestion_service.delete_document(bot.id, "doc-1"))

        assert deleted == 1
        assert rag_client.points(bot.id) == []
        assert asyncio.run(document_store.get_document(bot.id, "doc-1")) is None

    def test_delete_unknown_document(self, ingestion_service, bot):
        assert asyncio.run(ingestion_service.delete_document(bot.id, "nope")) == 0
