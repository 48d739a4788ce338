"""
Unit tests for the HTTP clients, run against httpx.MockTransport.
"""

import asyncio
import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.helper.errors import (
    InsufficientPermissionsError,
    InvalidCredentialError,
    MalformedRequestError,
    ModelNotFoundError,
    NotFoundError,
    ProviderPermanentError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitError,
    StoreConflictError,
    error_from_status,
)


@pytest.fixture(autouse=True)
def client_env(monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant.test")
    monkeypatch.setenv("EMBED_OPENAI_BASE_URL", "http://openai.test")
    monkeypatch.setenv("LLM_OPENAI_BASE_URL", "http://openai.test")
    monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", "http://ollama.test")
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.test")
    for key in ("RAG_QDRANT_API_KEY", "EMBED_OPENAI_API_KEY", "LLM_OPENAI_API_KEY", "EMBED_OPENAI_DIMENSIONS", "RAG_ENGINE", "EMBED_ENGINE", "LLM_ENGINE"):
        monkeypatch.delenv(key, raising=False)


def run_with(client, handler, scenario):
    """Boot the client on a mock transport, run the scenario coroutine function and close again."""
    client.use_transport(httpx.MockTransport(handler))

    async def main():
        await client.boot()
        try:
            return await scenario(client)
        finally:
            await client.close()

    return asyncio.run(main())


class TestErrorMapping:
    """Tests for error_from_status."""

    @pytest.mark.parametrize("status,kind", [
        (401, InvalidCredentialError),
        (403, InsufficientPermissionsError),
        (404, NotFoundError),
        (409, StoreConflictError),
        (429, RateLimitError),
        (504, ProviderTimeoutError),
        (502, ProviderUnavailableError),
        (400, MalformedRequestError),
        (418, ProviderPermanentError),
    ])
    def test_status_codes(self, status, kind):
        assert type(error_from_status(status, "boom")) is kind

    @pytest.mark.parametrize("client_class", [EmbedClientOpenai, EmbedClientOllama, LLMClientOpenai, LLMClientOllama])
    def test_model_clients_map_404_to_missing_model(self, helper_config, client_class):
        client = client_class(helper_config)

        assert type(client.error_for_status(404, "model not found")) is ModelNotFoundError
        assert type(client.error_for_status(401, "bad key")) is InvalidCredentialError

    def test_vector_store_keeps_404(self, helper_config):
        assert type(RAGClientQdrant(helper_config).error_for_status(404, "boom")) is NotFoundError


class TestQdrantClient:
    """Tests for RAGClientQdrant."""

    def test_search_request_and_parsing(self, helper_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "result": [{"id": "a", "score": 0.91, "payload": {"text": "Refunds take 30 days."}}],
                "status": "ok",
            })

        hits = run_with(RAGClientQdrant(helper_config), handler, lambda c: c.do_search("support-bot", [1.0, 0.0], limit=4, score_threshold=0.5))

        assert seen["path"] == "/collections/support-bot/points/search"
        assert seen["body"]["limit"] == 4
        assert seen["body"]["score_threshold"] == 0.5
        assert hits[0].id == "a"
        assert hits[0].payload["text"] == "Refunds take 30 days."

    def test_missing_collection_info_is_none(self, helper_config):
        info = run_with(
            RAGClientQdrant(helper_config),
            lambda request: httpx.Response(404, json={"status": {"error": "Not found"}}),
            lambda c: c.do_get_collection_info("nope"),
        )
        assert info is None

    def test_collection_info(self, helper_config):
        body = {"result": {"status": "green", "points_count": 3, "config": {"params": {"vectors": {"size": 4, "distance": "Cosine"}}}}}

        info = run_with(RAGClientQdrant(helper_config), lambda request: httpx.Response(200, json=body), lambda c: c.do_get_collection_info("support-bot"))

        assert info.point_count == 3
        assert info.vector_size == 4
        assert info.distance == "Cosine"

    @pytest.mark.parametrize("response", [
        httpx.Response(409, text="conflict"),
        httpx.Response(400, text="Point with id already exists"),
    ])
    def test_upsert_conflict(self, helper_config, response):
        with pytest.raises(StoreConflictError):
            run_with(RAGClientQdrant(helper_config), lambda request: response, lambda c: c.do_upsert_points("support-bot", [{"id": "a"}]))

    def test_server_error_is_transient(self, helper_config):
        with pytest.raises(ProviderUnavailableError):
            run_with(
                RAGClientQdrant(helper_config),
                lambda request: httpx.Response(503, text="unavailable"),
                lambda c: c.do_search("support-bot", [1.0], limit=1),
            )

    def test_api_key_header(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_QDRANT_API_KEY", "qdrant-secret")
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers.get("api-key")
            return httpx.Response(200, json={"result": {"collections": [{"name": "a"}, {"name": "b"}]}})

        names = run_with(RAGClientQdrant(helper_config), handler, lambda c: c.do_list_collections())

        assert seen["key"] == "qdrant-secret"
        assert names == ["a", "b"]

    def test_match_filter(self, helper_config):
        assert RAGClientQdrant(helper_config).build_match_filter({"document_id": "doc-1"}) == {
            "must": [{"key": "document_id", "match": {"value": "doc-1"}}]
        }

    def test_missing_base_url(self, helper_config, monkeypatch):
        monkeypatch.delenv("RAG_QDRANT_BASE_URL")
        with pytest.raises(ValueError):
            RAGClientQdrant(helper_config)

    def test_request_before_boot(self, helper_config):
        with pytest.raises(RuntimeError):
            asyncio.run(RAGClientQdrant(helper_config).do_healthcheck())


class TestOpenAIClients:
    """Tests for the OpenAI embedding and chat clients."""

    def test_embeddings_sorted_by_index(self, helper_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [
                {"embedding": [0.2, 0.2], "index": 1},
                {"embedding": [0.1, 0.1], "index": 0},
            ]})

        vectors = run_with(EmbedClientOpenai(helper_config), handler, lambda c: c.do_embed(["first", "second"], api_key="sk-call"))

        assert vectors == [[0.1, 0.1], [0.2, 0.2]]
        assert seen["auth"] == "Bearer sk-call"
        assert seen["body"]["model"] == "text-embedding-3-small"
        assert "dimensions" not in seen["body"]

    def test_unknown_model(self, helper_config):
        with pytest.raises(ModelNotFoundError):
            run_with(
                EmbedClientOpenai(helper_config),
                lambda request: httpx.Response(404, json={"error": {"code": "model_not_found"}}),
                lambda c: c.do_embed(["text"], api_key="sk-call", model="text-embedding-9"),
            )

    def test_vector_count_mismatch(self, helper_config):
        with pytest.raises(ProviderPermanentError):
            run_with(
                EmbedClientOpenai(helper_config),
                lambda request: httpx.Response(200, json={"data": [{"embedding": [0.1], "index": 0}]}),
                lambda c: c.do_embed(["first", "second"], api_key="sk-call"),
            )

    def test_invalid_key(self, helper_config):
        with pytest.raises(InvalidCredentialError):
            run_with(
                EmbedClientOpenai(helper_config),
                lambda request: httpx.Response(401, json={"error": {"message": "Incorrect API key"}}),
                lambda c: c.do_embed(["text"], api_key="sk-bad"),
            )

    def test_timeout(self, helper_config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(ProviderTimeoutError):
            run_with(EmbedClientOpenai(helper_config), handler, lambda c: c.do_embed(["text"], api_key="sk-call"))

    def test_chat_completion(self, helper_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "model": "gpt-4",
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hello!"}}],
                "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
            })

        completion = run_with(
            LLMClientOpenai(helper_config),
            handler,
            lambda c: c.do_chat([{"role": "user", "content": "hi"}], api_key="sk-call", model="gpt-4", temperature=0.3),
        )

        assert completion.content == "Hello!"
        assert completion.total_tokens == 15
        assert seen["body"]["temperature"] == 0.3
        assert "max_tokens" not in seen["body"]

    def test_chat_without_message(self, helper_config):
        with pytest.raises(ProviderPermanentError):
            run_with(
                LLMClientOpenai(helper_config),
                lambda request: httpx.Response(200, json={"choices": []}),
                lambda c: c.do_chat([{"role": "user", "content": "hi"}], api_key="sk-call"),
            )


class TestClientManager:
    """Tests for engine selection."""

    def test_default_engine(self, helper_config):
        client = RAGClientManager(helper_config).get_client()

        assert isinstance(client, RAGClientQdrant)
        assert client.get_engine_name() == "qdrant"

    def test_unsupported_engine(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINE", "pinecone")
        with pytest.raises(ValueError):
            RAGClientManager(helper_config)

    def test_engine_from_env(self, helper_config, monkeypatch):
        monkeypatch.setenv("EMBED_ENGINE", "Ollama")
        monkeypatch.setenv("LLM_ENGINE", "ollama")

        assert isinstance(EmbedClientManager(helper_config).get_client(), EmbedClientOllama)
        assert isinstance(LLMClientManager(helper_config).get_client(), LLMClientOllama)


class TestOllamaClients:
    """Tests for the Ollama embedding and chat clients."""

    def test_embed(self, helper_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2], [0.3, 0.4]], "model": "nomic-embed-text"})

        vectors = run_with(EmbedClientOllama(helper_config), handler, lambda c: c.do_embed(["a", "b"], model="nomic-embed-text"))

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        assert seen["path"] == "/api/embed"
        assert seen["auth"] is None

    def test_empty_embeddings(self, helper_config):
        with pytest.raises(ProviderPermanentError):
            run_with(
                EmbedClientOllama(helper_config),
                lambda request: httpx.Response(200, json={"embeddings": []}),
                lambda c: c.do_embed(["a"]),
            )

    def test_chat_options(self, helper_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "model": "llama3",
                "message": {"role": "assistant", "content": "Hi!"},
                "prompt_eval_count": 7,
                "eval_count": 2,
            })

        completion = run_with(
            LLMClientOllama(helper_config),
            handler,
            lambda c: c.do_chat([{"role": "user", "content": "hi"}], model="llama3", temperature=0.1, max_tokens=50),
        )

        assert completion.content == "Hi!"
        assert completion.total_tokens == 9
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"] == {"temperature": 0.1, "num_predict": 50}
