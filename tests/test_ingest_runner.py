"""
Tests for the ingest command line runner and the bot registry loader.
"""

import asyncio
import json

import pytest

from services.ServiceContainer import build_container, load_registry
from services.ingestion.ingest_runner import build_record, ingest_files, parse_args
from shared.models.bot import DocumentStatus
from tests.fakes import FakeEmbedClient, FakeLLMClient, FakeRAGClient


@pytest.fixture
def services(helper_config, settings, bot_store, credential_store, chunker):
    return build_container(
        helper_config,
        settings=settings,
        embed_client=FakeEmbedClient(),
        llm_client=FakeLLMClient(),
        rag_client=FakeRAGClient(),
        bot_store=bot_store,
        credential_store=credential_store,
        chunker=chunker,
    )


class TestParseArgs:
    """Tests for parse_args."""

    def test_files_and_deletes(self):
        args = parse_args(["--bot-id", "support-bot", "a.md", "b.txt", "--delete", "doc-1", "--delete", "doc-2"])

        assert args.bot_id == "support-bot"
        assert [str(f) for f in args.files] == ["a.md", "b.txt"]
        assert args.delete == ["doc-1", "doc-2"]
        assert args.concurrency == 2

    def test_bot_id_required(self):
        with pytest.raises(SystemExit):
            parse_args(["a.md"])


class TestIngestFiles:
    """Tests for ingest_files."""

    def test_record_from_path(self, tmp_path):
        path = tmp_path / "guide.md"
        path.write_text("# Guide\n\nSome words here.", encoding="utf-8")

        record = build_record("support-bot", path)

        assert record.name == "guide.md"
        assert record.content_type == "markdown"
        assert record.size_bytes == path.stat().st_size

    def test_failing_file_is_skipped(self, services, tmp_path):
        good = tmp_path / "refunds.txt"
        good.write_text("Refunds are issued within 30 days of purchase.", encoding="utf-8")
        bad = tmp_path / "empty.txt"
        bad.write_text("   ", encoding="utf-8")

        succeeded, failed = asyncio.run(ingest_files(services, "support-bot", [good, bad], concurrency=2))

        assert (succeeded, failed) == (1, 1)
        documents = asyncio.run(services.document_store.list_documents("support-bot"))
        assert sorted(d.status for d in documents) == sorted([DocumentStatus.COMPLETED, DocumentStatus.FAILED])

    def test_missing_file_is_skipped(self, services, tmp_path):
        """Test that an unreadable path counts as a failure without stopping the run."""
        good = tmp_path / "refunds.txt"
        good.write_text("Refunds are issued within 30 days of purchase.", encoding="utf-8")

        succeeded, failed = asyncio.run(ingest_files(services, "support-bot", [good, tmp_path / "missing.txt"], concurrency=2))

        assert (succeeded, failed) == (1, 1)
        documents = asyncio.run(services.document_store.list_documents("support-bot"))
        assert [d.name for d in documents] == ["refunds.txt"]

    def test_unknown_bot(self, services, tmp_path):
        with pytest.raises(ValueError):
            asyncio.run(ingest_files(services, "nope", [], concurrency=1))


class TestLoadRegistry:
    """Tests for load_registry."""

    def test_no_file_configured(self, helper_config, monkeypatch):
        monkeypatch.delenv("BOTS_FILE", raising=False)
        assert load_registry(helper_config).bots == []

    def test_registry_file(self, helper_config, monkeypatch, tmp_path):
        path = tmp_path / "bots.json"
        path.write_text(json.dumps({
            "bots": [{"id": "support-bot", "name": "Support", "owner_id": "owner-1", "faqs": [{"keywords": ["hours"], "answer": "9 to 5"}]}],
            "owner_keys": {"owner-1": "sk-owner"},
        }), encoding="utf-8")
        monkeypatch.setenv("BOTS_FILE", str(path))

        registry = load_registry(helper_config)

        assert [b.id for b in registry.bots] == ["support-bot"]
        assert registry.bots[0].faqs[0].answer == "9 to 5"
        assert registry.owner_keys == {"owner-1": "sk-owner"}
