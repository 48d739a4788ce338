"""Vector store adapter.

Owns the mapping between passages and stored points: every write gets fresh
random point ids, a rejected write is retried once with regenerated ids,
collections are created lazily with the dimensionality of their first write,
and reads degrade to empty results where that is safe.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.Search import CollectionInfo
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.helper.RetryPolicy import RetryPolicy, run_with_retry
from shared.helper.errors import (
    DimensionMismatchError,
    NotFoundError,
    ProviderTransientError,
    StoreConflictError,
    ValidationError,
)
from shared.models.retrieval import (
    CollectionStatus,
    RetrievalResult,
    RetrievedPassage,
    UpsertResult,
    VectorRecord,
)
from shared.models.settings import PipelineSettings


def new_point_id() -> str:
    return str(uuid.uuid4())


class VectorStoreService:
    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        settings: PipelineSettings | None = None,
        retry_policy: RetryPolicy | None = None,
        id_factory: Callable[[], str] = new_point_id,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._settings = settings or PipelineSettings.from_config(helper_config)
        self._retry_policy = retry_policy or RetryPolicy(max_attempts=3, initial_delay=0.5)
        self._id_factory = id_factory

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def upsert(self, collection_id: str, records: list[VectorRecord]) -> UpsertResult:
        """Store records under freshly generated point ids.

        Args:
            collection_id (str): Target collection, created if missing.
            records (list[VectorRecord]): Passages with embeddings, all of the same dimensionality.

        Returns:
            UpsertResult: Number of stored points and their ids, in record order.

        Raises:
            DimensionMismatchError: If the records disagree on dimensionality or do not match the collection.
            StoreConflictError: If a batch conflicts again after its ids were regenerated.
            KnowledgeBaseError: Any other store failure; remaining batches are not written.
        """
        if not records:
            return UpsertResult(stored_count=0, ids=[])

        dimensions = len(records[0].embedding)
        for record in records:
            if len(record.embedding) != dimensions:
                raise DimensionMismatchError(
                    expected=dimensions,
                    actual=len(record.embedding),
                    message=f"All records of one upsert must share dimensionality {dimensions}, got {len(record.embedding)}.",
                )

        await self.ensure_collection(collection_id, dimensions)

        stored_at = datetime.now(timezone.utc).isoformat()
        batch_size = max(1, int(self._settings.upsert_batch_size))
        all_ids: list[str] = []
        for batch_index, start in enumerate(range(0, len(records), batch_size)):
            batch = records[start: start + batch_size]
            ids = await self._write_batch(collection_id, batch, stored_at, batch_index)
            all_ids.extend(ids)

        self.logging.info("Stored %d points in collection '%s'.", len(all_ids), collection_id)
        return UpsertResult(stored_count=len(all_ids), ids=all_ids)

    async def _write_batch(self, collection_id: str, batch: list[VectorRecord], stored_at: str, batch_index: int) -> list[str]:
        ids = [self._id_factory() for _ in batch]
        result = await self._upsert_with_retry(collection_id, batch, ids, stored_at, batch_index)
        if result.success:
            return ids

        if not isinstance(result.error, StoreConflictError):
            raise result.error

        self.logging.warning(
            "Point id conflict in collection '%s' (batch %d). Regenerating ids and retrying once.",
            collection_id, batch_index,
        )
        ids = [self._id_factory() for _ in batch]
        result = await self._upsert_with_retry(collection_id, batch, ids, stored_at, batch_index)
        if result.success:
            return ids
        if isinstance(result.error, StoreConflictError):
            raise StoreConflictError(
                f"Batch {batch_index} for collection '{collection_id}' conflicted again after regenerating point ids."
            )
        raise result.error

    async def _upsert_with_retry(self, collection_id: str, batch: list[VectorRecord], ids: list[str], stored_at: str, batch_index: int):
        points = [self.build_point(record, point_id, stored_at) for record, point_id in zip(batch, ids)]
        return await run_with_retry(
            lambda: self._rag_client.do_upsert_points(collection_id, points),
            self._retry_policy,
            retry_on=(ProviderTransientError,),
            operation_name=f"Upsert batch {batch_index} into '{collection_id}'",
            logger=self.logging,
        )

    @staticmethod
    def build_point(record: VectorRecord, point_id: str, stored_at: str) -> dict:
        passage = record.passage
        extra = {k: v for k, v in passage.metadata.items() if k not in ("document_name", "source")}
        payload = VectorPoint(
            point_id=point_id,
            bot_id=passage.bot_id,
            document_id=passage.source_document_id,
            document_name=passage.document_name,
            chunk_index=passage.sequence_index,
            total_chunks=passage.total_siblings,
            token_count=passage.token_count,
            size_bytes=passage.size_bytes,
            content_type=passage.content_type,
            text=passage.text,
            stored_at=stored_at,
            extra=extra,
        )
        return {"id": point_id, "vector": record.embedding, "payload": payload.model_dump()}

    async def ensure_collection(self, collection_id: str, dimensions: int) -> CollectionInfo:
        """Create the collection if missing and check its dimensionality.

        Raises:
            DimensionMismatchError: If the existing collection was created with another vector size.
        """
        info = await self._rag_client.do_get_collection_info(collection_id)
        if info is None:
            self.logging.info("Creating collection '%s' with %d dimensions.", collection_id, dimensions)
            try:
                await self._rag_client.do_create_collection(collection_id, vector_size=dimensions)
            except StoreConflictError:
                # created concurrently by another ingestion
                self.logging.debug("Collection '%s' was created concurrently.", collection_id)
            info = await self._rag_client.do_get_collection_info(collection_id)
            if info is None:
                raise NotFoundError(f"Collection '{collection_id}' is missing right after creation.")
        if info.vector_size is not None and info.vector_size != dimensions:
            raise DimensionMismatchError(
                expected=info.vector_size,
                actual=dimensions,
                message=f"Collection '{collection_id}' stores {info.vector_size}-dimensional vectors, got {dimensions}.",
            )
        return info

    async def delete_by_filter(self, collection_id: str, filter: dict[str, Any]) -> int:
        """Delete every point whose payload matches all key/value pairs.

        Returns:
            int: Number of matching points counted right before the delete. 0 if the collection does not exist.

        Raises:
            ValidationError: If the filter is empty.
        """
        if not filter:
            raise ValidationError("delete_by_filter requires at least one payload condition.")
        if not (await self.collection_status(collection_id)).exists:
            return 0
        backend_filter = self._rag_client.build_match_filter(filter)
        count = await self._rag_client.do_count(collection_id, backend_filter)
        await self._rag_client.do_delete_points_by_filter(collection_id, backend_filter)
        self.logging.info("Deleted %d points from collection '%s' matching %s.", count, collection_id, filter)
        return count

    async def delete_collection(self, collection_id: str) -> bool:
        deleted = await self._rag_client.do_delete_collection(collection_id)
        if deleted:
            self.logging.info("Deleted collection '%s'.", collection_id)
        return deleted

    ##########################################
    ################# READS ##################
    ##########################################

    async def query(self, collection_id: str, query_vector: list[float], top_k: int, score_threshold: float) -> RetrievalResult:
        """Similarity search, best first, without any record scoring below the threshold.

        Returns:
            RetrievalResult: Empty if the collection does not exist.
        """
        try:
            hits = await self._rag_client.do_search(collection_id, query_vector, limit=top_k, score_threshold=score_threshold)
        except NotFoundError:
            return RetrievalResult()

        passages = [
            self._to_retrieved_passage(hit.id, hit.score, hit.payload)
            for hit in hits
            if hit.score >= score_threshold
        ]
        passages.sort(key=lambda p: p.score, reverse=True)
        return RetrievalResult(passages=passages[:top_k])

    @staticmethod
    def _to_retrieved_passage(point_id: str | int, score: float, payload: dict) -> RetrievedPassage:
        return RetrievedPassage(
            point_id=str(point_id),
            score=score,
            text=payload.get("text") or "",
            document_name=payload.get("document_name") or "Unknown file",
            chunk_index=int(payload.get("chunk_index") or 0),
            document_id=payload.get("document_id"),
            payload=payload,
        )

    async def collection_status(self, collection_id: str) -> CollectionStatus:
        """Existence and size of a collection. Never raises."""
        try:
            info = await self._rag_client.do_get_collection_info(collection_id)
        except Exception as e:
            self.logging.warning("Could not read status of collection '%s': %s", collection_id, e)
            return CollectionStatus()
        if info is None:
            return CollectionStatus()
        return CollectionStatus(exists=True, point_count=info.point_count, vector_size=info.vector_size)

    async def list_collections(self) -> list[str]:
        return await self._rag_client.do_list_collections()

    async def sample_points(self, collection_id: str, limit: int = 10) -> ScrollResult:
        """First points of a collection, for inspecting what a bot has stored."""
        return await self._rag_client.do_scroll(collection_id, limit=limit)

    async def system_status(self) -> dict:
        """Reachability of the store and the number of collections. Never raises."""
        try:
            response = await self._rag_client.do_healthcheck()
            healthy = response.is_success
            collections = await self.list_collections() if healthy else []
        except Exception as e:
            self.logging.error("Vector store health check failed: %s", e)
            return {"healthy": False, "engine": self._rag_client.get_engine_name(), "collections": 0, "error": str(e)}
        return {"healthy": healthy, "engine": self._rag_client.get_engine_name(), "collections": len(collections)}
