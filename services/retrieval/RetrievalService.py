"""Retrieval engine.

CheckCollection -> (empty: return nothing) -> Embed(query) -> VectorQuery -> FilterByThreshold.
Any failure along the way degrades to an empty result, except a rejected
credential, which the caller has to act on.
"""

import asyncio

from services.embedding.EmbeddingService import EmbeddingService
from services.vector_store.VectorStoreService import VectorStoreService
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import CredentialError
from shared.models.retrieval import RetrievalResult, SourceReference
from shared.models.settings import PipelineSettings

NO_CONTEXT_MARKER = "No relevant documents found in the knowledge base."


def format_context(result: RetrievalResult) -> str:
    """Render passages as labelled blocks separated by blank lines, or the no-context marker."""
    if result.is_empty:
        return NO_CONTEXT_MARKER
    blocks = [
        f"[Source {i}: {passage.document_name} (Chunk {passage.chunk_index + 1})]\n{passage.text}"
        for i, passage in enumerate(result.passages, start=1)
    ]
    return "\n\n".join(blocks)


def build_sources(result: RetrievalResult) -> list[SourceReference]:
    return [
        SourceReference(
            file_name=passage.document_name,
            chunk_index=passage.chunk_index,
            score=round(passage.score, 4),
            index=i,
        )
        for i, passage in enumerate(result.passages, start=1)
    ]


class RetrievalService:
    def __init__(
        self,
        helper_config: HelperConfig,
        vector_store: VectorStoreService,
        embedding_service: EmbeddingService,
        settings: PipelineSettings | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._vector_store = vector_store
        self._embedding_service = embedding_service
        self._settings = settings or PipelineSettings.from_config(helper_config)

    async def retrieve(
        self,
        bot_id: str,
        query: str,
        top_k: int | None = None,
        credential: str | None = None,
        score_threshold: float | None = None,
    ) -> RetrievalResult:
        """Fetch the passages of a bot's collection most similar to the query.

        Args:
            bot_id (str): Bot whose collection is searched.
            query (str): The user question.
            top_k (int | None): Maximum passages, RETRIEVAL_TOP_K if None.
            credential (str | None): Provider key used to embed the query.
            score_threshold (float | None): Minimum similarity, RETRIEVAL_SCORE_THRESHOLD if None.

        Returns:
            RetrievalResult: Passages best first. Empty on a missing or empty
            collection, on timeout and on any provider or store failure.

        Raises:
            CredentialError: If the embedding provider rejects the credential.
        """
        top_k = top_k or self._settings.retrieval_top_k
        threshold = self._settings.retrieval_score_threshold if score_threshold is None else score_threshold

        if not query or not query.strip():
            self.logging.warning("Retrieval for bot '%s' skipped: empty query.", bot_id)
            return RetrievalResult()

        try:
            result = await asyncio.wait_for(
                self._retrieve(bot_id, query, top_k, credential, threshold),
                timeout=self._settings.retrieval_timeout,
            )
        except asyncio.TimeoutError:
            self.logging.error(
                "Retrieval for bot '%s' timed out after %.1fs. Continuing without context.",
                bot_id, self._settings.retrieval_timeout,
            )
            return RetrievalResult()
        except CredentialError:
            raise
        except Exception as e:
            self.logging.error("Retrieval for bot '%s' failed: %s. Continuing without context.", bot_id, e)
            return RetrievalResult()

        self.logging.info("Retrieved %d passage(s) for bot '%s'.", len(result), bot_id)
        return result

    async def _retrieve(self, bot_id: str, query: str, top_k: int, credential: str | None, threshold: float) -> RetrievalResult:
        status = await self._vector_store.collection_status(bot_id)
        if not status.exists or status.point_count == 0:
            self.logging.info("Collection '%s' is missing or empty, skipping retrieval.", bot_id)
            return RetrievalResult()

        query_vector = await self._embedding_service.embed_query(query, credential)
        result = await self._vector_store.query(bot_id, query_vector, top_k=top_k, score_threshold=threshold)
        kept = [passage for passage in result.passages if passage.score >= threshold]
        return RetrievalResult(passages=kept)

    def format_context(self, result: RetrievalResult) -> str:
        return format_context(result)

    def sources(self, result: RetrievalResult) -> list[SourceReference]:
        return build_sources(result)
