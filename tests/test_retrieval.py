"""
Unit tests for the retrieval engine.
"""

import asyncio

import pytest

from services.embedding.EmbeddingService import EmbeddingService
from services.retrieval.RetrievalService import NO_CONTEXT_MARKER, RetrievalService, build_sources, format_context
from shared.helper.errors import InvalidCredentialError, MissingCredentialError, ProviderUnavailableError
from shared.models.retrieval import RetrievalResult, RetrievedPassage
from shared.models.settings import PipelineSettings
from tests.fakes import FakeEmbedClient, RecordingSleep, keyword_vector


def seed_knowledge_base(rag_client, collection: str = "support-bot") -> None:
    texts = [
        ("p1", "Refunds are issued within 30 days of purchase.", "refunds.md", 0),
        ("p2", "Shipping takes three to five business days.", "shipping.md", 0),
        ("p3", "Our warranty covers manufacturing defects.", "warranty.md", 2),
    ]
    rag_client.seed(collection, [
        (pid, keyword_vector(text), {"text": text, "document_name": name, "chunk_index": idx, "document_id": name})
        for pid, text, name, idx in texts
    ])


class TestRetrieve:
    """Tests for RetrievalService.retrieve."""

    def test_relevant_passage_is_returned(self, retrieval_service, rag_client):
        seed_knowledge_base(rag_client)

        result = asyncio.run(retrieval_service.retrieve("support-bot", "What is your refund policy?", credential="sk-test"))

        assert len(result) == 1
        assert result.passages[0].document_name == "refunds.md"
        assert result.passages[0].score >= 0.5

    def test_missing_collection_skips_embedding(self, retrieval_service, embed_client):
        """Test that no embedding call is made when the bot has no collection."""
        result = asyncio.run(retrieval_service.retrieve("support-bot", "What is your refund policy?", credential="sk-test"))

        assert result.is_empty
        assert embed_client.calls == []

    def test_empty_collection_skips_embedding(self, retrieval_service, rag_client, embed_client):
        rag_client.collections["support-bot"] = {"size": 4, "points": {}}

        result = asyncio.run(retrieval_service.retrieve("support-bot", "refund?", credential="sk-test"))

        assert result.is_empty
        assert embed_client.calls == []

    def test_passages_below_threshold_are_dropped(self, retrieval_service, rag_client):
        """Test that the threshold holds even though the store returns everything."""
        seed_knowledge_base(rag_client)

        result = asyncio.run(retrieval_service.retrieve("support-bot", "refund", credential="sk-test", score_threshold=0.9))

        assert all(p.score >= 0.9 for p in result.passages)
        assert [p.point_id for p in result.passages] == ["p1"]

    def test_top_k_override(self, retrieval_service, rag_client):
        seed_knowledge_base(rag_client)

        result = asyncio.run(retrieval_service.retrieve("support-bot", "anything", credential="sk-test", top_k=2, score_threshold=0.0))

        assert len(result) == 2

    def test_empty_query(self, retrieval_service, embed_client):
        assert asyncio.run(retrieval_service.retrieve("support-bot", "   ", credential="sk-test")).is_empty
        assert embed_client.calls == []

    def test_embedding_failure_degrades_to_empty(self, helper_config, vector_store, rag_client, settings):
        """Test that provider errors never escape retrieval."""
        seed_knowledge_base(rag_client)
        failing = FakeEmbedClient(errors=[ProviderUnavailableError("503")] * 5)
        embedding = EmbeddingService(helper_config, failing, settings=settings, sleep=RecordingSleep())
        service = RetrievalService(helper_config, vector_store, embedding, settings=settings)

        result = asyncio.run(service.retrieve("support-bot", "refund", credential="sk-test"))

        assert result.is_empty

    def test_missing_credential_is_raised(self, retrieval_service, rag_client):
        seed_knowledge_base(rag_client)
        with pytest.raises(MissingCredentialError):
            asyncio.run(retrieval_service.retrieve("support-bot", "refund", credential=None))

    def test_rejected_credential_is_raised(self, helper_config, vector_store, rag_client, settings):
        """Test that a revoked key is reported instead of looking like an empty knowledge base."""
        seed_knowledge_base(rag_client)
        rejecting = FakeEmbedClient(errors=[InvalidCredentialError("401")])
        embedding = EmbeddingService(helper_config, rejecting, settings=settings, sleep=RecordingSleep())
        service = RetrievalService(helper_config, vector_store, embedding, settings=settings)

        with pytest.raises(InvalidCredentialError):
            asyncio.run(service.retrieve("support-bot", "refund", credential="sk-revoked"))

        assert len(rejecting.calls) == 1

    def test_timeout_degrades_to_empty(self, helper_config, vector_store, rag_client):
        """Test that a slow provider is cut off by the retrieval timeout."""
        seed_knowledge_base(rag_client)
        settings = PipelineSettings(retrieval_timeout=0.05)
        slow = FakeEmbedClient(delay=1.0)
        service = RetrievalService(helper_config, vector_store, EmbeddingService(helper_config, slow, settings=settings), settings=settings)

        result = asyncio.run(service.retrieve("support-bot", "refund", credential="sk-test"))

        assert result.is_empty


class TestContextFormatting:
    """Tests for context rendering and source references."""

    def make_result(self) -> RetrievalResult:
        return RetrievalResult(passages=[
            RetrievedPassage(point_id="a", score=0.91234, text="Refunds take 30 days.", document_name="refunds.md", chunk_index=0),
            RetrievedPassage(point_id="b", score=0.8, text="Returns need a receipt.", document_name="returns.md", chunk_index=3),
        ])

    def test_format_context_blocks(self):
        context = format_context(self.make_result())

        assert context == (
            "[Source 1: refunds.md (Chunk 1)]\nRefunds take 30 days.\n\n"
            "[Source 2: returns.md (Chunk 4)]\nReturns need a receipt."
        )

    def test_empty_context_marker(self):
        assert format_context(RetrievalResult()) == NO_CONTEXT_MARKER

    def test_sources(self):
        sources = build_sources(self.make_result())

        assert [s.index for s in sources] == [1, 2]
        assert sources[0].file_name == "refunds.md"
        assert sources[0].score == 0.9123
        assert sources[1].chunk_index == 3
